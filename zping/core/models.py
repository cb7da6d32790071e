"""Core data models for zping."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .utils import now_local

STATUS_SUCCESS = "Success"
STATUS_EXCEPTION = "Exception"
STATUS_ERROR = "Error"


@dataclass(frozen=True)
class Target:
    """A ping target resolved once for the lifetime of the process."""

    name: str
    ip: str

    @property
    def display_label(self) -> str:
        if self.name == self.ip:
            return self.name
        return f"{self.name} [{self.ip}]"


@dataclass(frozen=True)
class LoggingConfig:
    """Where attempts are recorded as CSV rows, if anywhere."""

    enabled: bool = False
    path: Optional[Path] = None


@dataclass(frozen=True)
class PingContext:
    """Everything an attempt needs, built once before the loop starts."""

    target: Target
    csvlog: LoggingConfig = field(default_factory=LoggingConfig)
    timeout_ms: int = 3000
    interval: float = 1.0


@dataclass(frozen=True)
class EchoSucceeded:
    roundtrip_ms: int


@dataclass(frozen=True)
class EchoFailed:
    """The ICMP layer answered with a non-success status."""

    status: str
    reply_from: Optional[str] = None

    @property
    def reason(self) -> str:
        if self.reply_from:
            return f"Reply from {self.reply_from}: {self.status}".strip()
        return self.status.strip()


@dataclass(frozen=True)
class PingException:
    message: str


@dataclass(frozen=True)
class UnexpectedError:
    message: str


AttemptResult = EchoSucceeded | EchoFailed | PingException | UnexpectedError


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of a single echo attempt."""

    result: AttemptResult
    completed_at: datetime = field(default_factory=now_local)

    @property
    def succeeded(self) -> bool:
        return isinstance(self.result, EchoSucceeded)

    @property
    def status(self) -> str:
        if isinstance(self.result, EchoSucceeded):
            return STATUS_SUCCESS
        if isinstance(self.result, EchoFailed):
            return self.result.status
        if isinstance(self.result, PingException):
            return STATUS_EXCEPTION
        return STATUS_ERROR

    @property
    def roundtrip_ms(self) -> Optional[int]:
        if isinstance(self.result, EchoSucceeded):
            return self.result.roundtrip_ms
        return None

    @property
    def reply_from(self) -> Optional[str]:
        if isinstance(self.result, EchoFailed):
            return self.result.reply_from
        return None

    @property
    def error_message(self) -> Optional[str]:
        if isinstance(self.result, (PingException, UnexpectedError)):
            return self.result.message
        return None

    @property
    def failure_reason(self) -> str:
        if isinstance(self.result, EchoSucceeded):
            return ""
        if isinstance(self.result, EchoFailed):
            return self.result.reason
        return self.result.message


@dataclass
class PingStatistics:
    """Running totals over the attempts of one run."""

    sent: int = 0
    received: int = 0
    roundtrips: List[int] = field(default_factory=list)

    def record(self, outcome: AttemptOutcome) -> None:
        self.sent += 1
        if outcome.roundtrip_ms is not None:
            self.received += 1
            self.roundtrips.append(outcome.roundtrip_ms)

    @property
    def lost(self) -> int:
        return self.sent - self.received

    @property
    def loss_percent(self) -> int:
        if not self.sent:
            return 0
        return int(self.lost * 100 / self.sent)

    @property
    def minimum(self) -> Optional[int]:
        return min(self.roundtrips) if self.roundtrips else None

    @property
    def maximum(self) -> Optional[int]:
        return max(self.roundtrips) if self.roundtrips else None

    @property
    def average(self) -> Optional[int]:
        if not self.roundtrips:
            return None
        return round(sum(self.roundtrips) / len(self.roundtrips))


__all__ = [
    "STATUS_SUCCESS",
    "STATUS_EXCEPTION",
    "STATUS_ERROR",
    "Target",
    "LoggingConfig",
    "PingContext",
    "EchoSucceeded",
    "EchoFailed",
    "PingException",
    "UnexpectedError",
    "AttemptResult",
    "AttemptOutcome",
    "PingStatistics",
]
