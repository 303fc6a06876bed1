# lam/cli/main.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from lam.app.config import load_config
from lam.core.errors import LamError

from lam.cli.args import parse_args
from lam.cli.commands import (
    cmd_device,
    cmd_discover,
    cmd_status,
    cmd_stream,
    configure_file_logging,
    configure_logging,
)


def main(argv: Optional[list[str]] = None) -> int:
    try:
        args = parse_args(argv)
        configure_logging(args.log_level)
        if args.log_file:
            configure_file_logging(Path(args.log_file))

        cfg = load_config(args.config)

        if args.cmd == "discover":
            return cmd_discover(cfg, timeout_s=args.timeout)
        if args.cmd == "status":
            return cmd_status(cfg, args)
        if args.cmd == "stream":
            return cmd_stream(cfg, args)
        if args.cmd == "device":
            return cmd_device(cfg, args)

        return 2
    except LamError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
