from f9p_timing import cli
from f9p_timing.simulated_receiver import SimulatedReceiver
from f9p_timing.transport import CommandResult


def test_encode_only_prints_fields(capsys):
    rc = cli.main(["--encode-only", "--lat", "49.1234567895", "--height", "1.23456"], environ={})
    assert rc == cli.EXIT_OK
    assert capsys.readouterr().out.splitlines() == [
        "LAT=491234567",
        "LON=80000000",
        "HEIGHT=123",
        "LAT_HP=90",
        "LON_HP=0",
        "HEIGHT_HP=46",
    ]


def test_encode_only_reads_environment(capsys):
    rc = cli.main(["--encode-only"], environ={"LAT_D": "-33.8688197", "LON_D": "151.2092955"})
    assert rc == cli.EXIT_OK
    out = capsys.readouterr().out
    assert "LAT=-338688197" in out
    assert "LON=1512092955" in out


def test_invalid_input_exit_code(capsys):
    rc = cli.main(["--lon", "east"], environ={})
    assert rc == cli.EXIT_INVALID
    err = capsys.readouterr().err
    assert "longitude" in err
    assert "non-numeric" in err


def test_out_of_range_exit_code(capsys):
    rc = cli.main(["--encode-only", "--lat", "91"], environ={})
    assert rc == cli.EXIT_INVALID
    assert "out-of-range" in capsys.readouterr().err


def test_bad_environment_exit_code(capsys):
    rc = cli.main(["--dry-run"], environ={"BAUD": "fast"})
    assert rc == cli.EXIT_INVALID
    assert "BAUD" in capsys.readouterr().err


def test_dry_run_lists_plan(capsys):
    rc = cli.main(["--dry-run", "--user-delay", "5"], environ={})
    assert rc == cli.EXIT_OK
    out = capsys.readouterr().out.splitlines()
    assert "== TMODE3 Fixed LLH ==" in out
    assert " - CFG-TMODE-LAT=490000000 (RAM+BBR+FLASH)" in out
    assert " - CFG-TP-USER_DELAY_TP1=5 (RAM+BBR+FLASH) [optional]" in out


def test_sim_transport_full_run(tmp_path):
    logfile = tmp_path / "setup.log"
    rc = cli.main(["--transport", "sim", "--logfile", str(logfile)], environ={})
    assert rc == cli.EXIT_OK
    text = logfile.read_text()
    assert "== PPS (TP1) ==" in text
    assert "Summary: DONE (OK=" in text


def test_unreachable_receiver(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "open_transport", lambda config: SimulatedReceiver(reachable=False))
    rc = cli.main(["--logfile", str(tmp_path / "log")], environ={})
    assert rc == cli.EXIT_FAILED


def test_aborted_run(tmp_path, monkeypatch):
    rx = SimulatedReceiver(scripted={"CFG-TMODE-LAT": [CommandResult(1, "write error")] * 3})
    monkeypatch.setattr(cli, "open_transport", lambda config: rx)
    rc = cli.main(["--logfile", str(tmp_path / "log")], environ={})
    assert rc == cli.EXIT_FAILED
    assert "CFG-TMODE-MODE" in rx.keys_written()
    assert "CFG-TP-TP1_ENA" not in rx.keys_written()
    assert rx.closed


def test_open_transport_selects_backend():
    from f9p_timing.config import TimingConfig
    from f9p_timing.transport import UbxtoolTransport

    t = cli.open_transport(TimingConfig(protocol_version="29.20"))
    assert isinstance(t, UbxtoolTransport)
    assert t.protocol_version == "29.20"
    assert isinstance(cli.open_transport(TimingConfig(transport="sim")), SimulatedReceiver)


def test_huge_height_exit_code(capsys):
    rc = cli.main(["--encode-only", "--height", "9e999999"], environ={})
    assert rc == cli.EXIT_INVALID
    err = capsys.readouterr().err
    assert "height" in err
    assert "out-of-range" in err


def test_unwritable_logfile_exit_code(tmp_path, capsys):
    logfile = tmp_path / "missing" / "setup.log"
    rc = cli.main(["--transport", "sim", "--logfile", str(logfile)], environ={})
    assert rc == cli.EXIT_INVALID
    assert "cannot open log file" in capsys.readouterr().err
