# lam/cli/args.py
from __future__ import annotations

import argparse
from typing import Optional

DEFAULT_CONFIG = "lam.yml"


def _positive_float(v: str) -> float:
    try:
        f = float(v)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {v!r}") from None
    if f <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0: {v!r}")
    return f


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lam")
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="YAML config file (defaults if missing).")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default=None, help="Also write INFO+ logs to this file.")

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_discover = sub.add_parser("discover", help="List devices advertising on the local network.")
    p_discover.add_argument("--timeout", type=_positive_float, default=3.0)

    # host commands can skip discovery with --address/--port
    target = argparse.ArgumentParser(add_help=False)
    target.add_argument("--address", default=None, help="Device IP (skips discovery).")
    target.add_argument("--port", type=int, default=None, help="Device UDP port (with --address).")
    target.add_argument("--attempts", type=int, default=3, help="Discovery attempts before giving up.")

    p_status = sub.add_parser("status", parents=[target], help="Print one device status snapshot.")
    p_status.add_argument("--timeout", type=_positive_float, default=5.0)

    p_stream = sub.add_parser("stream", parents=[target], help="Stream telemetry to stdout.")
    p_stream.add_argument("--rate", type=int, default=None, help="Sampling rate in Hz.")
    p_stream.add_argument("--secs", type=_positive_float, default=None, help="Stop after this many seconds.")
    p_stream.add_argument("--csv", action="store_true", help="Print frames as CSV rows.")

    p_device = sub.add_parser("device", help="Run a simulated device on this machine.")
    p_device.add_argument("--mac", default="24:6F:28:00:00:01")
    p_device.add_argument("--ip", default="127.0.0.1", help="Address the simulated station reports.")
    p_device.add_argument("--credentials", default=None, help="Credentials file (overrides config).")
    p_device.add_argument("--ssid", default=None, help="Store these credentials before booting.")
    p_device.add_argument("--password", default="")
    p_device.add_argument("--no-advertise", action="store_true", help="Do not announce via mDNS.")
    p_device.add_argument("--secs", type=_positive_float, default=None)

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    args = build_parser().parse_args(argv)
    if (args.cmd in ("status", "stream")) and (args.address is None) != (args.port is None):
        build_parser().error("--address and --port must be given together")
    return args
