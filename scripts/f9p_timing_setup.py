#!/usr/bin/env python3
"""
Configure a u-blox ZED-F9P as a UTC-aligned PPS time source.

Usage:
  LAT_D=49.0123 LON_D=8.4567 HEIGHT_M=112.3 python3 scripts/f9p_timing_setup.py
  python3 scripts/f9p_timing_setup.py --help
"""
import sys

from f9p_timing.cli import main

if __name__ == "__main__":
    sys.exit(main())
