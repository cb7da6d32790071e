"""Console rendering of attempts."""
from __future__ import annotations

from typing import List, Optional

from rich.console import Console

from ..core.models import (
    AttemptOutcome,
    EchoFailed,
    EchoSucceeded,
    PingStatistics,
    Target,
)

INFO = "info"
WARNING = "warning"
ERROR = "error"

_STYLES = {
    INFO: None,
    WARNING: "yellow",
    ERROR: "bold red",
}


def format_roundtrip(roundtrip_ms: int) -> str:
    if roundtrip_ms < 1:
        return "time<1ms"
    return f"time={roundtrip_ms}ms"


def format_attempt(outcome: AttemptOutcome, target: Target) -> tuple[str, str]:
    """Return the console line for an attempt and the level it is shown at."""

    clock = outcome.completed_at.strftime("%H:%M:%S")
    result = outcome.result
    if isinstance(result, EchoSucceeded):
        return f"{clock} | {target.display_label} | {format_roundtrip(result.roundtrip_ms)}", INFO
    if isinstance(result, EchoFailed):
        return f"{clock} | {target.name} | {result.reason}", WARNING
    return f"{clock} | {target.name} | {result.message}", ERROR


def format_statistics(stats: PingStatistics, target: Target) -> List[str]:
    lines = [
        f"Ping statistics for {target.display_label}:",
        f"    Packets: Sent = {stats.sent}, Received = {stats.received}, "
        f"Lost = {stats.lost} ({stats.loss_percent}% loss)",
    ]
    if stats.received:
        lines.extend(
            [
                "Approximate round trip times in milli-seconds:",
                f"    Minimum = {stats.minimum}ms, Maximum = {stats.maximum}ms, "
                f"Average = {stats.average}ms",
            ]
        )
    return lines


class ConsoleReporter:
    """Writes attempt lines and announcements to the terminal."""

    def __init__(self, console: Optional[Console] = None, error_console: Optional[Console] = None) -> None:
        self.console = console or Console(soft_wrap=True)
        self.error_console = error_console or Console(stderr=True, soft_wrap=True)

    def _print(self, text: str, level: str = INFO, *, console: Optional[Console] = None) -> None:
        (console or self.console).print(
            text, style=_STYLES[level], markup=False, highlight=False, emoji=False
        )

    def info(self, text: str) -> None:
        self._print(text)

    def warning(self, text: str) -> None:
        self._print(text, WARNING)

    def error(self, text: str) -> None:
        self._print(text, ERROR)

    def fatal(self, text: str) -> None:
        self._print(f"Error: {text}", ERROR, console=self.error_console)

    def log_destination(self, path: object) -> None:
        self.info(f"Logging attempts to CSV file {path}")

    def pinging(self, target: Target) -> None:
        self.info(f"Pinging {target.display_label} with ICMP echo requests:")

    def attempt(self, outcome: AttemptOutcome, target: Target) -> None:
        text, level = format_attempt(outcome, target)
        self._print(text, level)

    def statistics(self, stats: PingStatistics, target: Target) -> None:
        if not stats.sent:
            return
        self.info("")
        for line in format_statistics(stats, target):
            self.info(line)


__all__ = [
    "INFO",
    "WARNING",
    "ERROR",
    "ConsoleReporter",
    "format_attempt",
    "format_roundtrip",
    "format_statistics",
]
