"""streamrec process configuration — YAML + Pydantic + env override.

This is the deployment config (where files live, which port to bind). The
user-editable recording settings live in ``settings.json``, see
``streamrec.core.config.settings``.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ════════════════════════════════════════════════════════════
# SUB-CONFIGS (nested BaseModel)
# ════════════════════════════════════════════════════════════


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 80


class StorageConfig(BaseModel):
    """File locations. Relative paths resolve against ``data_dir``."""

    data_dir: str = "."
    schedules_file: str = "schedules.json"
    settings_file: str = "settings.json"
    recordings_dir: str = "recordings"


class CaptureConfig(BaseModel):
    ffmpeg_binary: str = "ffmpeg"
    grace_seconds: float = 5.0  # added to the capture duration before a forced kill


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: str = "."
    file_sinks: bool = True


class WebConfig(BaseModel):
    """Pre-built web UI bundle, served at / when the directory exists."""

    dist_dir: str = "dist"


# ════════════════════════════════════════════════════════════
# ROOT CONFIG (BaseSettings — env + .env support)
# ════════════════════════════════════════════════════════════


class Config(BaseSettings):
    """
    Root configuration.

    Priority: env vars > .env > YAML (init kwargs) > defaults

    Env override examples:
        STREAMREC_SERVER__PORT=8080
        STREAMREC_STORAGE__DATA_DIR=/app
        STREAMREC_CAPTURE__FFMPEG_BINARY=/usr/local/bin/ffmpeg
    """

    model_config = SettingsConfigDict(
        env_prefix="STREAMREC_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    web: WebConfig = Field(default_factory=WebConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # YAML arrives as init kwargs; env and .env take precedence over it
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    # ── Computed properties ─────────────────────────────────

    def _resolve(self, name: str) -> Path:
        path = Path(name).expanduser()
        if path.is_absolute():
            return path
        return Path(self.storage.data_dir).expanduser() / path

    @property
    def schedules_path(self) -> Path:
        return self._resolve(self.storage.schedules_file)

    @property
    def settings_path(self) -> Path:
        return self._resolve(self.storage.settings_file)

    @property
    def recordings_path(self) -> Path:
        return self._resolve(self.storage.recordings_dir)

    @property
    def log_path(self) -> Path:
        return Path(self.logging.log_dir).expanduser()
