"""Utility helpers for zping."""
from __future__ import annotations

import importlib
import os
from datetime import datetime
from types import ModuleType

_UNSAFE_FILENAME_CHARS = '\\/:*?"<>|'
_FILENAME_TABLE = str.maketrans({char: "_" for char in _UNSAFE_FILENAME_CHARS})


def now_local() -> datetime:
    return datetime.now().astimezone()


def sanitize_filename(value: str) -> str:
    """Replace characters that are not allowed in file names with ``_``."""

    return value.translate(_FILENAME_TABLE)


def maybe_import(module_name: str) -> ModuleType | None:
    try:
        return importlib.import_module(module_name)
    except ModuleNotFoundError:
        return None


def env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


__all__ = ["now_local", "sanitize_filename", "maybe_import", "env_bool"]
