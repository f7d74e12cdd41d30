"""
The configuration sequence that turns a ZED-F9P into a PPS time source.

build_plan() returns the sections in the order they must be applied. The
UART1 baud change comes last because it drops the live link.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple, Union

from f9p_timing.config import TimingConfig
from f9p_timing.geo_encoder import FixedPosition
from f9p_timing.transport import LAYERS_ALL


@dataclass(frozen=True)
class SetStep:
    """Layered write to RAM+BBR+FLASH with fallback."""
    key: str
    value: int
    optional: bool = False

    @property
    def label(self) -> str:
        return f"{self.key}={self.value} (RAM+BBR+FLASH)"


@dataclass(frozen=True)
class TryStep:
    """Single transport call where unknown items are tolerated."""
    label: str
    method: str
    args: Tuple = ()
    optional: bool = False


Step = Union[SetStep, TryStep]


@dataclass
class Section:
    title: str
    steps: List[Step] = field(default_factory=list)


def _sets(*pairs) -> List[SetStep]:
    return [SetStep(k, v) for k, v in pairs]


def _try_set(label, key, value, optional=False) -> TryStep:
    return TryStep(label, "set_value", (key, value, LAYERS_ALL), optional)


PROTOCOLS = ("UBX", "NMEA", "RTCM3X")
NAV_MESSAGES = ("NAV_PVT", "NAV_TIMEUTC", "NAV_DOP", "NAV_SAT", "NAV_SVIN")


def constellations() -> Section:
    # lean start: GLONASS/BeiDou can be enabled later for steadier DOP
    return Section("Constellations", _sets(
        ("CFG-SIGNAL-GPS_ENA", 1),
        ("CFG-SIGNAL-GAL_ENA", 1),
        ("CFG-SIGNAL-QZSS_ENA", 1),
        ("CFG-SIGNAL-GLO_ENA", 0),
        ("CFG-SIGNAL-BDS_ENA", 0),
        ("CFG-SIGNAL-SBAS_ENA", 0),
    ))


def rates(cfg: TimingConfig) -> Section:
    return Section("Rates", _sets(
        ("CFG-RATE-MEAS", 1000),
        ("CFG-RATE-NAV", 1),
        ("CFG-RATE-TIMEREF", cfg.time_ref),
    ))


def nav_model(cfg: TimingConfig) -> Section:
    return Section("Nav Model & Filters", _sets(
        ("CFG-NAVSPG-DYNMODEL", cfg.dyn_model),
        ("CFG-NAVSPG-UTCSTANDARD", 0),  # auto, keeps gpsd's TPV time alive
        ("CFG-NAVSPG-INFIL_MINELEV", cfg.min_elev_deg),
        ("CFG-NAVSPG-INFIL_MINCNO", cfg.min_cno_dbhz),
    ))


def antenna() -> Section:
    return Section("Antenna & Interference", [
        _try_set("ITFM (anti-jam) enable", "CFG-ITFM-ENABLE", 1),
        _try_set("Active antenna: volt ctrl", "CFG-HW-ANT_CFG_VOLTCTRL", 1),
        _try_set("Active antenna: short det", "CFG-HW-ANT_CFG_SHORTDET", 1),
        _try_set("Active antenna: open det", "CFG-HW-ANT_CFG_OPENDET", 1),
        _try_set("Active antenna: power-down", "CFG-HW-ANT_CFG_PWRDOWN", 1),
        _try_set("Active antenna: auto-recover", "CFG-HW-ANT_CFG_RECOVER", 1),
    ])


def ports() -> Section:
    """UBX only on UART1, USB/I2C/SPI silenced in both directions."""
    steps = []
    for direction in ("IN", "OUT"):
        for proto in PROTOCOLS:
            steps.append(SetStep(f"CFG-UART1{direction}PROT-{proto}", 1 if proto == "UBX" else 0))
    for iface in ("USB", "I2C", "SPI"):
        for direction in ("IN", "OUT"):
            for proto in PROTOCOLS:
                steps.append(SetStep(f"CFG-{iface}{direction}PROT-{proto}", 0))
    return Section("Ports & Protocols", steps)


def fixed_position(cfg: TimingConfig, position: FixedPosition) -> Section:
    # mode goes to disabled first so the fields can be updated safely
    steps = [SetStep("CFG-TMODE-MODE", 0), SetStep("CFG-TMODE-POS_TYPE", 1)]
    steps += [SetStep(k, v) for k, v in position.as_config_items()]
    steps += [
        SetStep("CFG-TMODE-FIXED_POS_ACC", cfg.fixed_pos_acc),
        SetStep("CFG-TMODE-MODE", 2),
    ]
    return Section("TMODE3 Fixed LLH", steps)


def messages() -> Section:
    # MEAS=1000 and NAV=1, so rate 1 is 1 Hz
    steps = [SetStep(f"CFG-MSGOUT-UBX_{m}_UART1", 1) for m in NAV_MESSAGES]
    for iface in ("USB", "I2C", "SPI"):
        steps += [SetStep(f"CFG-MSGOUT-UBX_{m}_{iface}", 0) for m in NAV_MESSAGES]
    return Section("Messages (UART1 only, VAL keys)", steps)


def timepulse(cfg: TimingConfig) -> Section:
    steps = _sets(
        ("CFG-TP-TP1_ENA", 1),
        ("CFG-TP-PULSE_DEF", 0),         # period
        ("CFG-TP-PULSE_LENGTH_DEF", 1),  # length
        ("CFG-TP-PERIOD_TP1", cfg.pulse_period_us),
        ("CFG-TP-LEN_TP1", cfg.pulse_length_us),
        ("CFG-TP-ALIGN_TO_TOW_TP1", 1),
        ("CFG-TP-USE_LOCKED_TP1", 1),
        ("CFG-TP-POL_TP1", 1),
        ("CFG-TP-ANT_CABLEDELAY", cfg.cable_delay_ns),
        ("CFG-TP-TIMEGRID_TP1", 0),      # UTC grid
    )
    if cfg.user_delay_ns != 0:
        steps.append(SetStep("CFG-TP-USER_DELAY_TP1", cfg.user_delay_ns, optional=True))
    steps.append(_try_set("TP1 Smoothing (opt)", "CFG-TP-SMOOTHING_TP1", 1, optional=True))
    return Section("PPS (TP1)", steps)


def persist() -> Section:
    return Section("Persist", [
        TryStep("SAVE (modern)", "save"),
        TryStep("CFG-CFG Save (legacy)", "legacy_save"),
    ])


def finalize(cfg: TimingConfig) -> Section:
    return Section("Finalize: set UART1 baud", [
        _try_set(f"UART1 baud={cfg.target_baud} (RAM+BBR+FLASH)",
                 "CFG-UART1-BAUDRATE", cfg.target_baud, optional=True),
    ])


def build_plan(cfg: TimingConfig, position: FixedPosition) -> List[Section]:
    return [
        constellations(),
        rates(cfg),
        nav_model(cfg),
        antenna(),
        ports(),
        fixed_position(cfg, position),
        messages(),
        timepulse(cfg),
        persist(),
        finalize(cfg),
    ]


def describe(plan: List[Section]) -> List[str]:
    """Human readable listing of a plan, used by --dry-run."""
    lines = []
    for section in plan:
        lines.append(f"== {section.title} ==")
        for step in section.steps:
            suffix = " [optional]" if step.optional else ""
            lines.append(f" - {step.label}{suffix}")
    return lines
