"""
Execute a setup plan against a transport and classify every step.

Outcomes:
  OK   accepted
  NAK  receiver answered with ACK-NAK
  IGN  item unknown / not found on this firmware, not an error
  ERR  the command itself failed
"""
from __future__ import annotations

import enum
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import List

from f9p_timing.errors import ReceiverUnreachable, SetupError
from f9p_timing.sequence import Section, SetStep, TryStep
from f9p_timing.transport import LAYER_RAM, LAYERS_ALL, LAYERS_PERSIST, CommandResult

log = logging.getLogger(__name__)

LABEL_WIDTH = 45
_UNKNOWN_ITEM = re.compile(r"item .*unknown|not found", re.IGNORECASE)

TMODE3_FIELDS = ("flags", "mode", "ecef", "lla", "fixedPosAcc")


class Outcome(enum.Enum):
    OK = "OK"
    NAK = "NAK"
    IGN = "IGN"
    ERR = "ERR"


def _nak(result: CommandResult) -> bool:
    return "NAK" in result.output


def classify_try(result: CommandResult) -> Outcome:
    if not result.ok:
        if _UNKNOWN_ITEM.search(result.output):
            return Outcome.IGN
        return Outcome.ERR
    return Outcome.NAK if _nak(result) else Outcome.OK


def set_all(transport, key, value):
    """
    Write key to RAM+BBR+FLASH, falling back to BBR+FLASH and then RAM only.

    Returns (outcome, last result). The outcome reflects the last attempt.
    """
    result = transport.set_value(key, value, LAYERS_ALL)
    if not result.ok or _nak(result):
        log.debug("%s: layers %d refused, retrying BBR+FLASH", key, LAYERS_ALL)
        result = transport.set_value(key, value, LAYERS_PERSIST)
        if _nak(result):
            log.debug("%s: BBR+FLASH refused, retrying RAM only", key)
            result = transport.set_value(key, value, LAYER_RAM)
    if not result.ok:
        return Outcome.ERR, result
    return (Outcome.NAK if _nak(result) else Outcome.OK), result


@dataclass
class StepRecord:
    section: str
    label: str
    outcome: Outcome
    output: str = ""


@dataclass
class RunSummary:
    records: List[StepRecord] = field(default_factory=list)
    aborted: bool = False

    def counts(self) -> Counter:
        return Counter(r.outcome for r in self.records)

    def outcome_of(self, label) -> Outcome:
        for r in self.records:
            if r.label == label:
                return r.outcome
        raise KeyError(label)


def report(label: str, outcome: Outcome, output: str = "") -> None:
    line = f" - {label:<{LABEL_WIDTH}} {outcome.value}"
    if outcome is Outcome.ERR:
        log.error("%s: %s", line, output.strip())
    elif outcome is Outcome.NAK:
        log.warning(line)
    else:
        log.info(line)


def header(title: str) -> None:
    log.info("")
    log.info("== %s ==", title)


def run_step(transport, step):
    if isinstance(step, SetStep):
        return set_all(transport, step.key, step.value)
    if isinstance(step, TryStep):
        result = getattr(transport, step.method)(*step.args)
        return classify_try(result), result
    raise TypeError(f"unknown step type {type(step).__name__}")


def run_plan(transport, plan: List[Section]) -> RunSummary:
    """Apply every section in order. A failing required step raises SetupError."""
    summary = RunSummary()
    for section in plan:
        header(section.title)
        for step in section.steps:
            outcome, result = run_step(transport, step)
            report(step.label, outcome, result.output)
            summary.records.append(StepRecord(section.title, step.label, outcome, result.output))
            if outcome is Outcome.ERR and not step.optional:
                summary.aborted = True
                raise SetupError(step.label, result.output, summary)
    return summary


def connect(transport) -> None:
    header(f"Connecting (via {transport.name})")
    result = transport.probe()
    if not result.ok:
        raise ReceiverUnreachable(
            f"cannot reach receiver via {transport.name}: {result.output.strip() or 'no reply'}"
        )
    log.info("Receiver reachable.")


def tmode3_summary(output: str) -> List[str]:
    """Lines of a CFG-TMODE3 poll that describe the fixed position."""
    lines = []
    started = False
    for line in output.splitlines():
        if "UBX-CFG-TMODE3:" in line:
            started = True
            continue
        if started and any(f in line for f in TMODE3_FIELDS):
            lines.append(line.strip())
    return lines


def verify(transport) -> List[StepRecord]:
    """Quick readback. Never aborts, everything is reported as OK or NAK."""
    header("Quick Verify")
    records = []

    result = transport.poll("CFG-TMODE3")
    summary = tmode3_summary(result.output)
    outcome = Outcome.OK if result.ok and summary else Outcome.NAK
    report("TMODE3 summary", outcome)
    for line in summary:
        log.info("     %s", line)
    records.append(StepRecord("Quick Verify", "TMODE3 summary", outcome, "\n".join(summary)))

    for label, call in (
        ("TP1 Cable Delay", lambda: transport.get_value("CFG-TP-ANT_CABLEDELAY")),
        ("NAV-SVIN poll", lambda: transport.poll("NAV-SVIN")),
    ):
        result = call()
        outcome = Outcome.OK if result.ok else Outcome.NAK
        report(label, outcome)
        records.append(StepRecord("Quick Verify", label, outcome, result.output))
    return records
