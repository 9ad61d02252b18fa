"""Tests for streamrec.core.cron.trigger."""

from datetime import datetime
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from streamrec.core.cron import trigger
from streamrec.core.cron.trigger import build_trigger, translate_day_of_week, validate


@pytest.mark.parametrize(
    "expr",
    [
        "* * * * *",
        "0 9 * * 1",
        "*/15 6-18 * * mon-fri",
        "30 7 1,15 * *",
        "0 0 1 jan *",
        "0 22 * * 0",
        "0 22 * * 7",
        "0 9 * * 1-5",
        "30 0 9 * * 1",  # six fields, leading seconds
        "*/10 * * * * *",
    ],
)
def test_validate_accepts(expr):
    assert validate(expr) is True


@pytest.mark.parametrize(
    "expr",
    [
        "",
        "* * * *",
        "* * * * * * *",
        "60 * * * *",
        "0 24 * * *",
        "0 0 32 * *",
        "0 0 0 * *",
        "0 0 * 13 *",
        "0 0 * * 8",
        "0 0 * * funday",
        "abc * * * *",
        "0 9 * * 5-1",
        "0 9 * * */0",
        "61 0 9 * * 1",
        "not a cron",
    ],
)
def test_validate_rejects(expr):
    assert validate(expr) is False


def test_validate_never_raises_on_non_string():
    assert validate(None) is False
    assert validate(42) is False


def test_validate_unknown_time_zone():
    assert validate("0 9 * * 1", "Europe/Belfast") is True
    assert validate("0 9 * * 1", "Mars/Olympus") is False


def test_day_of_week_uses_crontab_numbering():
    assert translate_day_of_week("1") == "mon"
    assert translate_day_of_week("0") == "sun"
    assert translate_day_of_week("7") == "sun"
    assert translate_day_of_week("1-5") == "mon,tue,wed,thu,fri"
    assert translate_day_of_week("5-7") == "sun,fri,sat"
    assert translate_day_of_week("*/2") == "sun,tue,thu,sat"
    assert translate_day_of_week("mon,wed") == "mon,wed"
    assert translate_day_of_week("*") == "*"
    assert translate_day_of_week("0-6") == "*"


def test_monday_expression_fires_on_monday_in_zone():
    """'0 9 * * 1' is Monday 09:00 local time in the configured zone."""
    tz = ZoneInfo("America/New_York")
    cron = build_trigger("0 9 * * 1", "America/New_York")
    now = datetime(2026, 10, 14, 12, 0, tzinfo=tz)  # Wednesday
    fire = cron.get_next_fire_time(None, now)
    assert fire.weekday() == 0
    assert (fire.hour, fire.minute) == (9, 0)
    assert fire.utcoffset() == tz.utcoffset(datetime(2026, 10, 19, 9, 0))


def test_trigger_follows_dst_in_zone():
    """The same local hour before and after the UK clock change."""
    cron = build_trigger("0 9 * * *", "Europe/London")
    tz = ZoneInfo("Europe/London")
    before = cron.get_next_fire_time(None, datetime(2026, 10, 23, 12, 0, tzinfo=tz))
    after = cron.get_next_fire_time(None, datetime(2026, 10, 25, 12, 0, tzinfo=tz))
    assert before.hour == after.hour == 9
    assert before.utcoffset() != after.utcoffset()


def test_schedule_returns_cancellable_handle():
    scheduler = AsyncIOScheduler()
    callback = MagicMock()
    handle = trigger.schedule(scheduler, "0 9 * * 1", "UTC", callback, "job-1", args=["job-1"])

    job = scheduler.get_job("job-1")
    assert job is not None
    assert job.args == ("job-1",)
    assert handle.time_zone == "UTC"

    handle.cancel()
    assert scheduler.get_job("job-1") is None
    handle.cancel()  # idempotent


def test_cancel_swallows_missing_job():
    job = MagicMock()
    job.remove.side_effect = JobLookupError("gone")
    handle = trigger.TriggerHandle(job_id="x", time_zone="UTC", _job=job)
    handle.cancel()
    job.remove.assert_called_once()


def test_schedule_rejects_invalid_expression():
    with pytest.raises(ValueError):
        trigger.schedule(AsyncIOScheduler(), "61 * * * *", "UTC", MagicMock(), "job-1")


@pytest.mark.parametrize(
    "field,expected",
    [
        ("5/2", "sun,fri"),
        ("fri/2", "sun,fri"),
        ("6/1", "sun,sat"),
        ("1/3", "sun,mon,thu"),
        ("0/2", "sun,tue,thu,sat"),
        ("7/2", "sun"),
    ],
)
def test_stepped_single_start_runs_to_end_of_week(field, expected):
    assert translate_day_of_week(field) == expected
