"""Ping loop: one echo attempt at a time against a pre-resolved target."""
from __future__ import annotations

import itertools
import logging
import time
from typing import Callable, Iterable, Optional, Protocol

from ..net.icmp import EchoReply, IcmpError
from ..reporting.console import ConsoleReporter
from ..reporting.csvlog import append_row
from .models import (
    AttemptOutcome,
    AttemptResult,
    EchoFailed,
    EchoSucceeded,
    PingContext,
    PingException,
    PingStatistics,
    UnexpectedError,
)

logger = logging.getLogger(__name__)

_UNSET_ADDRESSES = {"", "0.0.0.0", "::"}


class EchoSender(Protocol):
    def send(self, address: str, timeout_ms: int) -> EchoReply:  # pragma: no cover - protocol
        ...


def classify(reply: EchoReply) -> AttemptResult:
    if reply.succeeded:
        return EchoSucceeded(roundtrip_ms=max(0, int(reply.roundtrip_ms or 0)))
    reply_from = reply.address if reply.address not in _UNSET_ADDRESSES else None
    return EchoFailed(status=reply.status, reply_from=reply_from)


def attempt(context: PingContext, sender: EchoSender) -> AttemptOutcome:
    """Send one echo request and turn whatever happens into an outcome."""

    ip = context.target.ip
    try:
        result = classify(sender.send(ip, context.timeout_ms))
    except IcmpError as exc:
        result = PingException(f"A ping exception occurred to {ip}: {exc}")
    except Exception as exc:
        logger.debug("Unexpected failure pinging %s", ip, exc_info=True)
        result = UnexpectedError(f"An unexpected error occurred: {exc}")
    return AttemptOutcome(result=result)


def _record(context: PingContext, outcome: AttemptOutcome, reporter: ConsoleReporter) -> None:
    reporter.attempt(outcome, context.target)
    if not context.csvlog.enabled or context.csvlog.path is None:
        return
    try:
        append_row(context.csvlog.path, outcome, context.target)
    except OSError as exc:
        reporter.error(f"Could not write to CSV log file {context.csvlog.path}: {exc}")


def run_loop(
    context: PingContext,
    sender: EchoSender,
    reporter: ConsoleReporter,
    *,
    count: Optional[int] = None,
    stats: Optional[PingStatistics] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> PingStatistics:
    """Ping ``count`` times, or forever when ``count`` is None.

    The interval sleep follows every attempt, failures included. An infinite
    run only ends through ``KeyboardInterrupt``, which propagates to the caller.
    """

    if count is not None and count < 1:
        raise ValueError("count must be at least 1")
    stats = stats if stats is not None else PingStatistics()
    sleep = sleep or time.sleep
    iterations: Iterable[int] = itertools.count() if count is None else range(count)
    for _ in iterations:
        outcome = attempt(context, sender)
        _record(context, outcome, reporter)
        stats.record(outcome)
        sleep(context.interval)
    return stats


__all__ = ["EchoSender", "attempt", "classify", "run_loop"]
