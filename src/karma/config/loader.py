from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict

CONFIG_ENV = "KARMA_CONFIG"
DEFAULT_CONFIG_PATH = Path("config.toml")


def config_path(path: str | Path | None = None) -> Path:
    """Explicit ``path``, else ``$KARMA_CONFIG``, else ``./config.toml``."""

    if path is not None:
        return Path(path)
    override = os.getenv(CONFIG_ENV)
    return Path(override).expanduser() if override else DEFAULT_CONFIG_PATH


def load_raw_config(path: str | Path | None = None) -> Dict[str, Any]:
    """
    Parse the TOML config file.

    A missing file yields an empty dict so every setting falls back to its
    environment variable.
    """
    try:
        with config_path(path).open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError:
        return {}


__all__ = ["CONFIG_ENV", "DEFAULT_CONFIG_PATH", "config_path", "load_raw_config"]
