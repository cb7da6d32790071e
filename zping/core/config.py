"""Configuration loading for zping."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .utils import env_bool, maybe_import

tomllib = maybe_import("tomllib") or maybe_import("tomli")

CONFIG_PATH = Path.home() / ".config" / "zping" / "config.toml"


@dataclass(frozen=True)
class RuntimeConfig:
    """Computed runtime configuration values."""

    verbose: bool = False
    color: bool = True


def _load_file_config(path: Path) -> dict[str, object]:
    if tomllib is None or not path.exists():
        return {}
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError):
        return {}
    section = data.get("zping")
    if not isinstance(section, dict):
        return {}
    return section


def load_config(
    *,
    cli_verbose: Optional[bool] = None,
    cli_color: Optional[bool] = None,
    path: Optional[Path] = None,
) -> RuntimeConfig:
    """Compose runtime configuration: CLI over environment over file."""

    file_config = _load_file_config(path or CONFIG_PATH)

    file_verbose = bool(file_config.get("verbose", False))
    env_verbose = env_bool("ZPING_VERBOSE", file_verbose)
    verbose = cli_verbose if cli_verbose is not None else env_verbose

    file_color = bool(file_config.get("color", True))
    env_color = file_color and "NO_COLOR" not in os.environ
    color = cli_color if cli_color is not None else env_color

    return RuntimeConfig(verbose=verbose, color=color)


__all__ = ["RuntimeConfig", "load_config", "CONFIG_PATH"]
