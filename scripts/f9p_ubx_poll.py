#!/usr/bin/env python3
"""
Poll the receiver once through the configured transport and print the reply.
Handy to check the link before running the full setup.

Usage:
  TRANSPORT=serial PORT=/dev/ttyACM0 BAUD=38400 python3 scripts/f9p_ubx_poll.py MON-VER
  python3 scripts/f9p_ubx_poll.py CFG-TMODE3        # via gpsd/ubxtool
"""
import sys

from f9p_timing.cli import open_transport
from f9p_timing.config import TimingConfig
from f9p_timing.errors import TimingSetupError


def main():
    messages = sys.argv[1:] or ["MON-VER"]
    try:
        config = TimingConfig.from_env()
        with open_transport(config) as t:
            print("Polling via", t.name)
            rc = 0
            for message in messages:
                result = t.poll(message)
                print(f"--- {message} (rc={result.returncode})")
                print(result.output.rstrip())
                rc = rc or result.returncode
    except TimingSetupError as e:
        print("ERROR:", e, file=sys.stderr)
        sys.exit(1)
    sys.exit(1 if rc else 0)


if __name__ == "__main__":
    main()
