"""Configuration loader — config.yaml next to the recorder's data, env override.

Relative directories in a config file (``storage.data_dir``,
``logging.log_dir``, ``web.dist_dir``) are taken relative to that file, so
``streamrec run`` behaves the same from any working directory.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from streamrec.core.config.schema import Config

CONFIG_ENV = "STREAMREC_CONFIG"

# (section, key) pairs holding directories
_DIR_KEYS = (
    ("storage", "data_dir"),
    ("logging", "log_dir"),
    ("web", "dist_dir"),
)


def load_config(config_path: str | Path | None = None) -> Config:
    """
    Load configuration.

    Resolution order for config file:
        1. Explicit ``config_path`` argument
        2. ``STREAMREC_CONFIG`` env variable
        3. ``./config.yaml`` in cwd

    With no file, every directory defaults to the working directory.
    """
    path = _resolve_path(config_path)
    data = _load_yaml(path)
    if path is not None and data:
        data = _anchor_dirs(data, path.resolve().parent)
    return Config(**data)


def _resolve_path(config_path: str | Path | None = None) -> Path | None:
    if config_path:
        return Path(config_path)

    env = os.environ.get(CONFIG_ENV)
    if env:
        return Path(env)

    default = Path("config.yaml")
    return default if default.exists() else None


def _load_yaml(path: Path | None) -> dict[str, Any]:
    """Load YAML file, return empty dict if not found."""
    if not path or not path.exists():
        if path:
            logger.warning(f"Config file {path} not found, using defaults")
        return {}
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _anchor_dirs(data: dict[str, Any], base: Path) -> dict[str, Any]:
    """Make relative directory settings relative to ``base``."""
    data = dict(data)
    for section, key in _DIR_KEYS:
        values = data.get(section)
        if not isinstance(values, dict) or not isinstance(values.get(key), str):
            continue
        value = Path(values[key]).expanduser()
        if not value.is_absolute():
            data[section] = {**values, key: str(base / value)}
    return data
