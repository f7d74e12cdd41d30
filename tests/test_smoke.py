from f9p_timing.config import TimingConfig
from f9p_timing.geo_encoder import encode_position
from f9p_timing.runner import connect, run_plan
from f9p_timing.sequence import build_plan
from f9p_timing.simulated_receiver import SimulatedReceiver


def test_smoke_simulated_receiver_accepts_plan():
    cfg = TimingConfig()
    rx = SimulatedReceiver()
    connect(rx)
    summary = run_plan(rx, build_plan(cfg, encode_position(cfg.latitude, cfg.longitude, cfg.height)))
    assert summary.records
    assert rx.values["CFG-TMODE-LAT"] == 490000000
