"""Recordings library and host introspection (disk space, ffmpeg version)."""

from __future__ import annotations

import asyncio
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from streamrec.core.config.settings import SettingsStore
from streamrec.memory.models import DiskSpace, RecordingInfo

AUDIO_EXTENSIONS = (".mp3", ".ogg")

_FFMPEG_VERSION = re.compile(r"ffmpeg version (\S+)")


class RecordingLibrary:
    """Finished and in-progress audio files in the configured storage path."""

    def __init__(self, settings: SettingsStore):
        self.settings = settings

    @property
    def directory(self) -> Path:
        return Path(self.settings.read().storage_path).expanduser()

    def list(self) -> list[RecordingInfo]:
        """Audio files, newest first. Empty if the directory does not exist yet."""
        directory = self.directory
        if not directory.is_dir():
            return []
        items = []
        for path in directory.iterdir():
            if not path.is_file() or path.suffix.lower() not in AUDIO_EXTENSIONS:
                continue
            stat = path.stat()
            items.append(
                RecordingInfo(
                    name=path.name,
                    size=stat.st_size,
                    created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                )
            )
        items.sort(key=lambda r: r.created_at, reverse=True)
        return items

    def resolve(self, filename: str) -> Path | None:
        """Path of an existing recording; None if missing or not a plain file name."""
        if not filename or Path(filename).name != filename or filename in (".", ".."):
            return None
        path = self.directory / filename
        return path if path.is_file() else None

    def delete(self, filename: str) -> bool:
        path = self.resolve(filename)
        if path is None:
            return False
        path.unlink()
        logger.info(f"Deleted recording: {filename}")
        return True


def _human(n: float) -> str:
    for unit in ("B", "K", "M", "G"):
        if n < 1024:
            return f"{n:.1f}{unit}"
        n /= 1024
    return f"{n:.1f}T"


def disk_space(path: Path) -> DiskSpace:
    """df -h style usage of the filesystem holding ``path``."""
    probe = path
    while not probe.exists() and probe != probe.parent:
        probe = probe.parent
    usage = shutil.disk_usage(probe)
    percent = round(usage.used / usage.total * 100) if usage.total else 0
    return DiskSpace(
        path=str(path),
        size=_human(usage.total),
        used=_human(usage.used),
        available=_human(usage.free),
        used_percentage=f"{percent}%",
    )


async def ffmpeg_version(binary: str = "ffmpeg") -> str:
    """Version reported by ``ffmpeg -version``; "Unknown" if it cannot be read."""
    try:
        proc = await asyncio.create_subprocess_exec(
            binary, "-version",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=10)
    except (OSError, asyncio.TimeoutError) as e:
        logger.error(f"Error getting ffmpeg version: {e}")
        return "Unknown"
    match = _FFMPEG_VERSION.search(stdout.decode("utf-8", errors="replace"))
    return match.group(1) if match else "Unknown"
