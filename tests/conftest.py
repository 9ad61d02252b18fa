"""Shared fixtures: an in-memory stand-in for the ffmpeg runner."""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from streamrec.core.config.settings import SettingsStore
from streamrec.core.errors import CaptureError


class FakeProcess:
    """Capture handle whose exit is driven by the test."""

    def __init__(self, job_id: str, output_path: Path):
        self.job_id = job_id
        self.output_path = output_path
        self.killed = False
        self._exit: asyncio.Future = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        return self._exit.done()

    async def wait(self) -> None:
        reason = await self._exit
        if reason:
            raise CaptureError(self.job_id, reason)

    def finish(self, error: str | None = None) -> None:
        if not self.done:
            self._exit.set_result(error)

    def kill(self) -> None:
        if self.done:
            return
        self.killed = True
        self._exit.set_result("ffmpeg exited with code -9")


class FakeRunner:
    def __init__(self):
        self.calls: list[dict] = []
        self.processes: list[FakeProcess] = []

    async def run(self, job_id, source_url, output_path, duration_seconds, bitrate):
        self.calls.append({
            "job_id": job_id,
            "source_url": source_url,
            "output_path": output_path,
            "duration_seconds": duration_seconds,
            "bitrate": bitrate,
        })
        proc = FakeProcess(job_id, output_path)
        self.processes.append(proc)
        return proc


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def settings_store(tmp_path):
    store = SettingsStore(tmp_path / "settings.json", default_storage_path=tmp_path / "recordings")
    store.ensure()
    return store


@pytest.fixture
def fixed_clock():
    """Clock pinned to Monday 2026-10-19 09:00 in the requested zone."""
    return lambda tz: datetime(2026, 10, 19, 9, 0, tzinfo=ZoneInfo(tz))


@pytest.fixture
def settle():
    """Let pending callbacks (watch tasks) run."""

    async def _settle(rounds: int = 5) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)

    return _settle
