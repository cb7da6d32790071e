"""Builds the execution context a run works from."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..dns.resolv import AddrInfoLookup, resolve
from ..reporting.console import ConsoleReporter
from ..reporting.csvlog import prepare_logging
from .models import PingContext, Target
from .utils import now_local

logger = logging.getLogger(__name__)


def build_context(
    target_name: str,
    reporter: ConsoleReporter,
    *,
    csvlog: bool = False,
    csvlog_path: Optional[str] = None,
    now: Optional[datetime] = None,
    lookup: Optional[AddrInfoLookup] = None,
) -> PingContext:
    """Prepare logging, resolve the target once and announce both.

    Raises ``LogDirectoryError`` before any lookup when the log directory is
    missing, and ``HostNotFoundError`` when the target does not resolve.
    """

    csv_config = prepare_logging(
        target_name,
        csvlog=csvlog,
        csvlog_path=csvlog_path,
        generated_at=now or now_local(),
    )
    if csv_config.enabled:
        reporter.log_destination(csv_config.path)

    target = Target(name=target_name, ip=resolve(target_name, lookup))
    reporter.pinging(target)
    logger.debug("Context ready for %s", target.display_label)
    return PingContext(target=target, csvlog=csv_config)


__all__ = ["build_context"]
