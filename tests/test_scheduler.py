"""Tests for streamrec.core.cron.scheduler."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from streamrec.core.capture.executor import CaptureExecutor
from streamrec.core.config.settings import Settings
from streamrec.core.cron.scheduler import RecordingScheduler
from streamrec.core.cron.types import JobStatus
from streamrec.core.errors import NotFoundError, ValidationError
from streamrec.memory.registry import JobRegistry
from streamrec.memory.store import ScheduleStore


@pytest.fixture
def store(tmp_path):
    return ScheduleStore(tmp_path / "schedules.json")


@pytest.fixture
def sched(store, settings_store, fake_runner, fixed_clock):
    registry = JobRegistry(store)
    executor = CaptureExecutor(registry, settings_store, runner=fake_runner, clock=fixed_clock)
    return RecordingScheduler(registry, executor, settings_store)


def _aps_job(sched, job_id):
    return sched._scheduler.get_job(job_id)


# ── add / remove ───────────────────────────────────────────


def test_add_job_installs_trigger(sched, store):
    job = sched.add_job("Test Show", "http://example/stream", "0 9 * * 1", 30)

    assert job.status == JobStatus.SCHEDULED
    assert sched.is_installed(job.job_id)
    aps = _aps_job(sched, job.job_id)
    assert aps.args == (job.job_id, "Test Show", "http://example/stream", 30)
    assert job.job_id in store.restore()


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(name=None, url="http://x", schedule="0 9 * * 1", duration=30),
        dict(name="A", url="", schedule="0 9 * * 1", duration=30),
        dict(name="A", url="http://x", schedule="   ", duration=30),
        dict(name="A", url="http://x", schedule="0 9 * * 1", duration=None),
        dict(name="A", url="http://x", schedule="0 9 * * 1", duration=0),
        dict(name="A", url="http://x", schedule="0 9 * * 1", duration="soon"),
    ],
)
def test_add_job_rejects_missing_fields(sched, store, kwargs):
    with pytest.raises(ValidationError, match="Missing or invalid fields"):
        sched.add_job(**kwargs)
    assert len(sched.registry) == 0
    assert not store.path.exists()


def test_add_job_rejects_invalid_cron(sched, store):
    with pytest.raises(ValidationError, match="Invalid cron schedule expression"):
        sched.add_job("A", "http://x", "61 * * * *", 30)
    assert len(sched.registry) == 0
    assert sched._scheduler.get_jobs() == []


def test_add_job_accepts_numeric_string_duration(sched):
    job = sched.add_job("A", "http://x", "0 9 * * 1", "45")
    assert job.duration == 45


def test_remove_job(sched, store):
    job = sched.add_job("A", "http://x", "0 9 * * 1", 30)
    sched.remove_job(job.job_id)

    assert job.job_id not in sched.registry
    assert not sched.is_installed(job.job_id)
    assert _aps_job(sched, job.job_id) is None
    assert store.restore() == {}


def test_remove_unknown_job(sched):
    sched.add_job("A", "http://x", "0 9 * * 1", 30)
    with pytest.raises(NotFoundError):
        sched.remove_job("nope")
    assert len(sched.registry) == 1


def test_list_jobs_oldest_first(sched):
    first = sched.add_job("First", "http://x", "0 9 * * 1", 30)
    second = sched.add_job("Second", "http://x", "0 9 * * 2", 30)
    assert [j.job_id for j in sched.list_jobs()] == [first.job_id, second.job_id]


# ── install ────────────────────────────────────────────────


def test_install_invalid_expression_leaves_job_inert(sched):
    job = sched.add_job("A", "http://x", "0 9 * * 1", 30)
    bad = job.model_copy(update={"schedule": "not cron"})

    assert sched.install(bad) is False
    assert not sched.is_installed(job.job_id)
    assert _aps_job(sched, job.job_id) is None


def test_install_uses_settings_time_zone(sched, settings_store):
    settings_store.write(Settings(storage_path="/tmp/rec", time_zone="Europe/Belfast"))
    job = sched.add_job("A", "http://x", "0 9 * * 1", 30)

    trigger = _aps_job(sched, job.job_id).trigger
    assert str(trigger.timezone) == "Europe/Belfast"


def test_unknown_time_zone_falls_back_to_utc(sched, settings_store):
    data = json.loads(settings_store.path.read_text())
    data["timeZone"] = "Mars/Olympus"
    settings_store.path.write_text(json.dumps(data))

    job = sched.add_job("A", "http://x", "0 9 * * 1", 30)
    assert sched._bindings[job.job_id].time_zone == "UTC"


def test_reinstall_all_picks_up_new_zone(sched, settings_store):
    a = sched.add_job("A", "http://x", "0 9 * * 1", 30)
    b = sched.add_job("B", "http://x", "0 10 * * 1", 30)

    settings_store.write(Settings(storage_path="/tmp/rec", time_zone="Asia/Tokyo"))
    assert sched.reinstall_all() == 2
    for job in (a, b):
        assert sched._bindings[job.job_id].time_zone == "Asia/Tokyo"
        assert str(_aps_job(sched, job.job_id).trigger.timezone) == "Asia/Tokyo"


# ── start / stop ───────────────────────────────────────────


@pytest.mark.asyncio
async def test_start_restores_jobs(sched, store):
    store.path.write_text(json.dumps({
        "100": {"name": "Good", "url": "http://x", "schedule": "0 9 * * 1", "duration": 30,
                "status": "recording", "currentRecording": "Good_2026-10-12_09-00.mp3"},
        "101": {"name": "Bad", "url": "http://x", "schedule": "every monday", "duration": 30},
        "102": {"name": "Broken"},
    }))

    with patch.object(sched, "_scheduler") as aps:
        await sched.start()
        aps.start.assert_called_once()

    assert sorted(j.job_id for j in sched.list_jobs()) == ["100", "101"]
    assert sched.is_installed("100")
    assert not sched.is_installed("101")

    good = sched.registry.get("100")
    assert good.status == JobStatus.SCHEDULED
    assert good.current_recording is None
    assert store.restore()["100"].status == JobStatus.SCHEDULED


@pytest.mark.asyncio
async def test_start_with_no_file(sched):
    with patch.object(sched, "_scheduler"):
        await sched.start()
    assert sched.list_jobs() == []


@pytest.mark.asyncio
async def test_stop_shuts_down_executor(sched):
    sched._scheduler = MagicMock(running=True)
    with patch.object(sched.executor, "shutdown", new_callable=AsyncMock) as shutdown:
        await sched.stop()
    sched._scheduler.shutdown.assert_called_once_with(wait=False)
    shutdown.assert_awaited_once()


# ── fire ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_fire_starts_capture(sched, fake_runner):
    job = sched.add_job("Test Show", "http://example/stream", "0 9 * * 1", 30)
    aps = _aps_job(sched, job.job_id)

    await aps.func(*aps.args)

    assert len(fake_runner.calls) == 1
    assert sched.registry.get(job.job_id).status == JobStatus.RECORDING
    await sched.executor.shutdown()


@pytest.mark.asyncio
async def test_fire_never_raises(sched):
    with patch.object(sched.executor, "start", AsyncMock(side_effect=RuntimeError("boom"))):
        await sched._fire("1", "A", "http://x", 1)


@pytest.mark.asyncio
async def test_start_survives_odd_records(sched, store):
    store.path.write_text(json.dumps({
        "1": {"job_id": "1", "name": "A", "url": "http://x", "schedule": "0 9 * * 1", "duration": 30},
        "2": {"name": "B", "url": "http://x", "schedule": "0 9 * * 1", "duration": 30, "status": "paused"},
        "3": {"name": "C", "url": "http://x", "schedule": "0 9 * * 1", "duration": 0},
    }))
    with patch.object(sched, "_scheduler"):
        await sched.start()

    assert [j.job_id for j in sched.list_jobs()] == ["1", "2"]
    assert all(sched.is_installed(i) for i in ("1", "2"))
    assert sched.registry.get("2").status == JobStatus.SCHEDULED
