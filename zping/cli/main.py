"""Command line interface for zping."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler

from ..core.config import RuntimeConfig, load_config
from ..core.models import PingContext, PingStatistics
from ..core.runner import run_loop
from ..core.session import build_context
from ..dns.resolv import HostNotFoundError
from ..net.icmp import IcmpSender
from ..reporting.console import ConsoleReporter
from ..reporting.csvlog import LogDirectoryError

DEFAULT_COUNT = 4
EXIT_INTERRUPTED = 130


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid count: {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError(f"count must be at least 1, got {number}")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zping",
        description="zping - timestamped ICMP ping with optional CSV logging",
    )
    parser.add_argument("target_name", help="Host name or IP address to ping")
    parser.add_argument(
        "-t",
        "--tt",
        dest="finite",
        action="store_true",
        help="Stop after -n attempts instead of pinging until interrupted",
    )
    parser.add_argument(
        "-n",
        dest="count",
        type=_positive_int,
        default=DEFAULT_COUNT,
        help=f"Number of attempts with --tt (default {DEFAULT_COUNT})",
    )
    parser.add_argument(
        "--csvlog",
        action="store_true",
        help="Append every attempt to zping-<target>-<timestamp>.csv in the working directory",
    )
    parser.add_argument(
        "--csvlog-path",
        dest="csvlog_path",
        default=None,
        help="Append every attempt to this CSV file (implies --csvlog)",
    )
    parser.add_argument("--verbose", action="store_true", default=None)
    parser.add_argument("--no-color", dest="color", action="store_false", default=None)
    return parser


def _configure_logging(config: RuntimeConfig) -> None:
    handler = RichHandler(
        console=Console(stderr=True, no_color=not config.color),
        show_path=False,
        markup=False,
    )
    root = logging.getLogger("zping")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if config.verbose else logging.WARNING)
    root.propagate = False


def _build_reporter(config: RuntimeConfig) -> ConsoleReporter:
    return ConsoleReporter(
        console=Console(soft_wrap=True, no_color=not config.color),
        error_console=Console(stderr=True, soft_wrap=True, no_color=not config.color),
    )


def _ping(context: PingContext, reporter: ConsoleReporter, count: Optional[int]) -> int:
    stats = PingStatistics()
    with IcmpSender() as sender:
        try:
            run_loop(context, sender, reporter, count=count, stats=stats)
        except KeyboardInterrupt:
            reporter.statistics(stats, context.target)
            return EXIT_INTERRUPTED
    reporter.statistics(stats, context.target)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    config = load_config(cli_verbose=args.verbose, cli_color=args.color)
    _configure_logging(config)
    reporter = _build_reporter(config)
    try:
        context = build_context(
            args.target_name,
            reporter,
            csvlog=args.csvlog,
            csvlog_path=args.csvlog_path,
        )
    except (HostNotFoundError, LogDirectoryError) as exc:
        reporter.fatal(str(exc))
        return 1
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    return _ping(context, reporter, args.count if args.finite else None)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
