"""
Run configuration. Every value can come from an environment variable
(e.g. LAT_D=52.5 PORT=/dev/ttyACM0) and be overridden on the command line.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

from f9p_timing.errors import ConfigError

DEFAULT_PORT = "/dev/serial/by-id/usb-u-blox_AG_-_www.u-blox.com_u-blox_GNSS_receiver-if00"
TRANSPORTS = ("ubxtool", "serial", "sim")


@dataclass(frozen=True)
class TimingConfig:
    # surveyed position, HAE not MSL
    latitude: str = "49"
    longitude: str = "8"
    height: str = "1"

    cable_delay_ns: int = 25          # ~25 ns for 5 m RG-174
    pulse_period_us: int = 1000000    # 1 Hz
    pulse_length_us: int = 50000      # 50 ms high
    time_ref: int = 0                 # CFG-RATE-TIMEREF, 0 = UTC
    dyn_model: int = 2                # stationary
    min_elev_deg: int = 20
    min_cno_dbhz: int = 15
    fixed_pos_acc: int = 10000        # 0.1 mm units, 10000 = 1.0 m
    user_delay_ns: int = 0
    target_baud: int = 460800

    protocol_version: str = "27.50"
    wait_s: float = 0.5
    transport: str = "ubxtool"
    port: str = DEFAULT_PORT
    baud: int = 38400
    logfile: str = "~/f9p_setup.log"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TimingConfig":
        env = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            name = ENV_NAMES[f.name]
            if name in env:
                values[f.name] = _coerce(name, f.name, env[name])
        return cls(**values).validated()

    def with_overrides(self, **overrides) -> "TimingConfig":
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes).validated()

    def validated(self) -> "TimingConfig":
        if self.transport not in TRANSPORTS:
            raise ConfigError(
                f"unknown transport {self.transport!r}, expected one of {', '.join(TRANSPORTS)}"
            )
        return self

    @property
    def logfile_path(self) -> str:
        return os.path.expanduser(self.logfile)


ENV_NAMES = {
    "latitude": "LAT_D",
    "longitude": "LON_D",
    "height": "HEIGHT_M",
    "cable_delay_ns": "ANT_CABLE_DELAY_NS",
    "pulse_period_us": "TP_PERIOD_US",
    "pulse_length_us": "TP_LEN_US",
    "time_ref": "TIME_REF_UTC",
    "dyn_model": "DYNMODEL",
    "min_elev_deg": "MIN_ELEV_DEG",
    "min_cno_dbhz": "MIN_CNO_DBHZ",
    "fixed_pos_acc": "FIXEDPOS_ACC",
    "user_delay_ns": "USER_DELAY_NS",
    "target_baud": "TARGET_BAUD",
    "protocol_version": "UBX_PROTVER",
    "wait_s": "UBX_WAIT",
    "transport": "TRANSPORT",
    "port": "PORT",
    "baud": "BAUD",
    "logfile": "LOGFILE",
}

_INT_FIELDS = {
    "cable_delay_ns", "pulse_period_us", "pulse_length_us", "time_ref",
    "dyn_model", "min_elev_deg", "min_cno_dbhz", "fixed_pos_acc",
    "user_delay_ns", "target_baud", "baud",
}


def _coerce(env_name: str, field_name: str, raw: str):
    raw = raw.strip()
    try:
        if field_name in _INT_FIELDS:
            return int(raw)
        if field_name == "wait_s":
            return float(raw)
    except ValueError:
        raise ConfigError(f"{env_name}={raw!r} is not a number") from None
    return raw
