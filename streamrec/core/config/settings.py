"""User-editable recording settings — settings.json.

Read from disk on every use. Nothing caches a Settings instance, so an
edit made through the API (or by hand) applies to the next trigger install
and the next capture.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from streamrec.core.cron.trigger import resolve_time_zone
from streamrec.core.errors import PersistenceError, ValidationError

REQUIRED_FIELDS = ("recordingFormat", "audioQuality", "storagePath", "timeZone")


class Settings(BaseModel):
    """Process-wide recording settings (camelCase on disk and over HTTP)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    recording_format: str = "mp3"
    audio_quality: str = "medium"  # low | medium | high
    storage_path: str = "recordings"
    time_zone: str = "UTC"  # IANA id, e.g. Europe/Belfast

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    @classmethod
    def from_update(cls, payload: dict[str, Any]) -> Settings:
        """Validate a wholesale settings update.

        Raises ValidationError when a required field is missing or empty,
        or the time zone is unknown.
        """
        missing = [key for key in REQUIRED_FIELDS if not payload.get(key)]
        if missing:
            raise ValidationError(f"Missing required settings fields: {', '.join(missing)}")
        try:
            settings = cls.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(str(e)) from e
        try:
            resolve_time_zone(settings.time_zone)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        return settings


class SettingsStore:
    """File-backed Settings reader/writer."""

    def __init__(self, path: str | Path, default_storage_path: str | Path = "recordings"):
        self.path = Path(path)
        self.default_storage_path = str(default_storage_path)

    def defaults(self) -> Settings:
        return Settings(storage_path=self.default_storage_path)

    def ensure(self) -> None:
        """Create settings.json with defaults on first run."""
        if self.path.exists():
            return
        try:
            self.write(self.defaults())
        except PersistenceError as e:
            logger.error(f"Could not create default settings: {e}")
            return
        logger.info(
            f"Created default settings file {self.path}. "
            "Update timeZone for your region."
        )

    def read(self) -> Settings:
        """Current settings from disk; defaults if the file is missing or unreadable."""
        if not self.path.exists():
            self.ensure()
            return self.defaults()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return Settings.model_validate(data)
        except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
            logger.error(f"Error reading settings {self.path}: {e}")
            return self.defaults()

    def write(self, settings: Settings) -> None:
        """Overwrite settings.json wholesale."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(settings.to_dict(), indent=2), encoding="utf-8"
            )
        except OSError as e:
            raise PersistenceError(f"Failed to write settings {self.path}: {e}") from e
        logger.info("Settings updated")
