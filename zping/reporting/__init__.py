"""Reporting helpers."""

from .console import ConsoleReporter
from .csvlog import LogDirectoryError, append_row, default_log_path, prepare_logging

__all__ = ["ConsoleReporter", "LogDirectoryError", "append_row", "default_log_path", "prepare_logging"]
