"""zping core package."""

from .core.models import AttemptOutcome, LoggingConfig, PingContext, PingStatistics, Target

__all__ = [
    "AttemptOutcome",
    "LoggingConfig",
    "PingContext",
    "PingStatistics",
    "Target",
]

__version__ = "0.1.0"
