"""CSV attempt log."""
from __future__ import annotations

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..core.models import AttemptOutcome, LoggingConfig, Target
from ..core.utils import now_local, sanitize_filename

logger = logging.getLogger(__name__)

CSV_HEADER = ["datetime", "target_name", "target_ip", "status", "RoundtripTime", "failure_reason"]


class LogDirectoryError(FileNotFoundError):
    """Raised when the directory meant to hold the CSV log does not exist."""


def default_log_path(target_name: str, generated_at: datetime, directory: Optional[Path] = None) -> Path:
    """Build ``zping-<target>-<YYYYMMDDTHHMMSS>.csv`` under ``directory`` (cwd by default)."""

    stamp = generated_at.strftime("%Y%m%dT%H%M%S")
    filename = f"zping-{sanitize_filename(target_name)}-{stamp}.csv"
    return (directory if directory is not None else Path.cwd()) / filename


def prepare_logging(
    target_name: str,
    *,
    csvlog: bool,
    csvlog_path: Optional[str],
    generated_at: datetime,
) -> LoggingConfig:
    """Decide whether and where to log, checking the directory before any ping is sent."""

    if not csvlog and not csvlog_path:
        return LoggingConfig()
    if csvlog_path:
        path = Path(csvlog_path)
    else:
        path = default_log_path(target_name, generated_at)
    directory = path.parent
    if not directory.is_dir():
        raise LogDirectoryError(f"The directory for the CSV log file does not exist: {directory}")
    if path.is_dir():
        raise LogDirectoryError(f"The CSV log path is a directory, not a file: {path}")
    return LoggingConfig(enabled=True, path=path)


def build_row(outcome: AttemptOutcome, target: Target, logged_at: datetime) -> List[str]:
    roundtrip = outcome.roundtrip_ms
    return [
        logged_at.isoformat(timespec="microseconds"),
        target.name,
        target.ip,
        outcome.status,
        "" if roundtrip is None else str(roundtrip),
        outcome.failure_reason,
    ]


def append_row(
    path: Path, outcome: AttemptOutcome, target: Target, logged_at: Optional[datetime] = None
) -> None:
    """Append one attempt, writing the header first when the file is new or empty."""

    write_header = not path.exists() or path.stat().st_size == 0
    with path.open("a", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        if write_header:
            writer.writerow(CSV_HEADER)
        writer.writerow(build_row(outcome, target, logged_at or now_local()))
    logger.debug("Appended %s attempt to %s", outcome.status, path)


__all__ = [
    "CSV_HEADER",
    "LogDirectoryError",
    "default_log_path",
    "prepare_logging",
    "build_row",
    "append_row",
]
