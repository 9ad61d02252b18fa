"""End-to-end: schedule → trigger fire → capture → outcome, with a fake ffmpeg."""

import json
from unittest.mock import patch

import pytest

from streamrec.api.app import build_services
from streamrec.core.config import Config
from streamrec.core.cron.types import JobStatus


@pytest.fixture
def services(tmp_path, fake_runner, fixed_clock):
    config = Config(storage={"data_dir": str(tmp_path)})
    built = build_services(config)
    executor = built["scheduler"].executor
    executor.runner = fake_runner
    executor.clock = fixed_clock
    return built


def _fire(scheduler, job_id):
    aps = scheduler._scheduler.get_job(job_id)
    return aps.func(*aps.args)


@pytest.mark.asyncio
async def test_schedule_fire_complete(services, tmp_path, fake_runner, settle):
    scheduler = services["scheduler"]
    job = scheduler.add_job("Test Show", "http://example/stream", "0 9 * * 1", 30)

    await _fire(scheduler, job.job_id)

    view = {v["id"]: v for v in (j.to_view() for j in scheduler.list_jobs())}[job.job_id]
    assert view["status"] == "recording"
    assert view["currentRecording"] == "Test Show_2026-10-19_09-00.mp3"

    call = fake_runner.calls[0]
    assert call["output_path"] == tmp_path / "recordings" / "Test Show_2026-10-19_09-00.mp3"
    assert call["duration_seconds"] == 1800

    fake_runner.processes[0].finish()
    await settle()

    final = scheduler.registry.get(job.job_id)
    assert final.status == JobStatus.SCHEDULED
    assert final.last_recording == "Test Show_2026-10-19_09-00.mp3"
    assert final.current_recording is None

    on_disk = json.loads((tmp_path / "schedules.json").read_text())[job.job_id]
    assert on_disk["lastRecording"] == "Test Show_2026-10-19_09-00.mp3"
    assert "currentRecording" not in on_disk
    await scheduler.stop()


@pytest.mark.asyncio
async def test_failure_then_restart_keeps_job(services, tmp_path, fake_runner, settle):
    scheduler = services["scheduler"]
    job = scheduler.add_job("Test Show", "http://example/stream", "0 9 * * 1", 30)

    await _fire(scheduler, job.job_id)
    fake_runner.processes[0].finish("ffmpeg exited with code 1: 404 Not Found")
    await settle()
    assert scheduler.registry.get(job.job_id).status == JobStatus.ERROR

    # a fresh process restores the job in scheduled status, trigger reinstalled
    restarted = build_services(Config(storage={"data_dir": str(tmp_path)}))["scheduler"]
    with patch.object(restarted, "_scheduler") as aps:
        await restarted.start()
    restored = restarted.registry.get(job.job_id)
    assert restored.status == JobStatus.SCHEDULED
    assert restored.error is None
    assert restarted.is_installed(job.job_id)
    aps.add_job.assert_called_once()
    await scheduler.stop()


@pytest.mark.asyncio
async def test_deadline_overrun_keeps_partial(services, fake_runner, settle):
    scheduler = services["scheduler"]
    executor = scheduler.executor
    job = scheduler.add_job("Night Show", "http://example/stream", "0 22 * * *", 1)

    with patch.object(executor, "_deadline_seconds", return_value=0.01):
        await _fire(scheduler, job.job_id)
        handle = fake_runner.processes[0]
        await handle._exit  # resolved by the forced stop
    await settle()

    assert handle.killed
    final = scheduler.registry.get(job.job_id)
    assert final.status == JobStatus.SCHEDULED
    assert final.last_recording == "Night Show_2026-10-19_09-00.mp3"
    await scheduler.stop()
