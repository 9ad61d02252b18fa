"""Configuration module."""

from streamrec.core.config.loader import load_config
from streamrec.core.config.schema import Config
from streamrec.core.config.settings import Settings, SettingsStore

__all__ = ["Config", "load_config", "Settings", "SettingsStore"]
