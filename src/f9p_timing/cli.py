"""
Configure a ZED-F9P as a UTC-aligned PPS time source.

Usage:
  f9p-timing-setup --lat 49.0123 --lon 8.4567 --height 112.3
  LAT_D=49 LON_D=8 HEIGHT_M=1 f9p-timing-setup --transport serial --port /dev/ttyACM0
  f9p-timing-setup --encode-only     # print the TMODE3 fixed-point fields
  f9p-timing-setup --dry-run         # list the sequence, touch nothing
  f9p-timing-setup --transport sim   # run against a simulated receiver

Every option also has an environment variable (see f9p_timing.config).
Exit status: 0 done, 1 receiver unreachable or run aborted, 2 bad input.
"""
import argparse
import logging
import sys

import serial

from f9p_timing.config import TRANSPORTS, TimingConfig
from f9p_timing.errors import (
    ConfigError,
    InvalidInputError,
    ReceiverUnreachable,
    SetupError,
)
from f9p_timing.geo_encoder import encode_position
from f9p_timing.runner import connect, run_plan, verify
from f9p_timing.sequence import build_plan, describe
from f9p_timing.simulated_receiver import SimulatedReceiver
from f9p_timing.transport import SerialTransport, UbxtoolTransport

log = logging.getLogger("f9p_timing")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2

HINTS = "Hints: cgps -s  ·  sudo ppstest /dev/pps0  ·  ntpshmmon -o 5  ·  gpspipe -w -n 10 | grep TPV"


def build_parser():
    p = argparse.ArgumentParser(description="Configure a u-blox ZED-F9P as a PPS time source.")
    p.add_argument("--lat", dest="latitude", help="latitude, decimal degrees (LAT_D)")
    p.add_argument("--lon", dest="longitude", help="longitude, decimal degrees (LON_D)")
    p.add_argument("--height", dest="height", help="height above ellipsoid, metres (HEIGHT_M)")
    p.add_argument("--transport", choices=TRANSPORTS, help="ubxtool via gpsd, direct serial, or sim")
    p.add_argument("--port", help="serial device for --transport serial (PORT)")
    p.add_argument("--baud", type=int, help="current receiver baud for --transport serial (BAUD)")
    p.add_argument("--cable-delay", dest="cable_delay_ns", type=int, help="antenna cable delay, ns")
    p.add_argument("--user-delay", dest="user_delay_ns", type=int, help="extra PPS user delay, ns")
    p.add_argument("--target-baud", dest="target_baud", type=int, help="UART1 baud set last")
    p.add_argument("--logfile", help="append log here (LOGFILE)")
    p.add_argument("--log-level", default="INFO", help="DEBUG/INFO/WARNING/ERROR")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--encode-only", action="store_true", help="print the six TMODE3 integers and exit")
    mode.add_argument("--dry-run", action="store_true", help="list the configuration sequence and exit")
    return p


def setup_logging(level="INFO", logfile=None):
    handlers = [logging.StreamHandler(sys.stdout)]
    if logfile:
        handlers.append(logging.FileHandler(logfile, mode="a"))
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO),
                        format="%(asctime)s %(levelname)s %(message)s",
                        handlers=handlers,
                        force=True)


def open_transport(config: TimingConfig):
    """Build the transport selected in the configuration."""
    if config.transport == "ubxtool":
        return UbxtoolTransport(config.protocol_version, config.wait_s)
    if config.transport == "serial":
        try:
            return SerialTransport(config.port, config.baud)
        except serial.SerialException as e:
            raise ReceiverUnreachable(f"cannot open {config.port}: {e}") from e
    return SimulatedReceiver()


def load_config(args, environ=None) -> TimingConfig:
    return TimingConfig.from_env(environ).with_overrides(
        latitude=args.latitude,
        longitude=args.longitude,
        height=args.height,
        transport=args.transport,
        port=args.port,
        baud=args.baud,
        cable_delay_ns=args.cable_delay_ns,
        user_delay_ns=args.user_delay_ns,
        target_baud=args.target_baud,
        logfile=args.logfile,
    )


def run(config: TimingConfig, position, transport) -> None:
    """Connect, apply the whole plan, verify. Raises on unreachable/aborted."""
    plan = build_plan(config, position)
    connect(transport)
    summary = run_plan(transport, plan)
    verify(transport)
    counts = summary.counts()
    log.info("")
    log.info("Summary: DONE (%s)", ", ".join(f"{o.value}={n}" for o, n in sorted(
        counts.items(), key=lambda item: item[0].value)))
    log.info("Restart gpsd so it re-probes UART1 at %d baud.", config.target_baud)
    log.info(HINTS)


def main(argv=None, environ=None):
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args, environ)
        # validated before any device I/O
        position = encode_position(config.latitude, config.longitude, config.height)
        if args.encode_only:
            for line in position.as_env_lines():
                print(line)
            return EXIT_OK
        if args.dry_run:
            for line in describe(build_plan(config, position)):
                print(line)
            return EXIT_OK
    except (ConfigError, InvalidInputError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_INVALID

    try:
        setup_logging(args.log_level, config.logfile_path)
    except OSError as e:
        print(f"ERROR: cannot open log file {config.logfile_path}: {e}", file=sys.stderr)
        return EXIT_INVALID
    try:
        with open_transport(config) as transport:
            run(config, position, transport)
    except ReceiverUnreachable as e:
        log.error("ERROR: %s", e)
        return EXIT_FAILED
    except SetupError as e:
        log.error("Aborted: %s", e)
        return EXIT_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
