"""Cron expressions — validation and time-zone-aware APScheduler binding.

Accepted grammar (crontab style)::

    minute hour day-of-month month day-of-week
    second minute hour day-of-month month day-of-week

Day-of-week numbers follow crontab: 0 and 7 are Sunday. APScheduler counts
weekdays from Monday, so numeric values are translated to weekday names
before the trigger is built.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.cron import CronTrigger

_WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
_WEEKDAY_INDEX = {name: i for i, name in enumerate(_WEEKDAYS)}


def resolve_time_zone(name: str) -> ZoneInfo:
    """Return the IANA zone ``name`` or raise ValueError."""
    if not name or not isinstance(name, str):
        raise ValueError(f"Invalid time zone: {name!r}")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown time zone: {name}") from e


def _weekday(token: str) -> int:
    token = token.lower()
    if token in _WEEKDAY_INDEX:
        return _WEEKDAY_INDEX[token]
    if not token.isdigit():
        raise ValueError(f"Invalid day-of-week value: {token!r}")
    value = int(token)
    if value > 7:
        raise ValueError(f"Day-of-week value out of range: {value}")
    return value


def _expand_weekdays(term: str) -> set[int]:
    step = 1
    stepped = "/" in term
    if stepped:
        term, step_str = term.split("/", 1)
        if not step_str.isdigit() or int(step_str) == 0:
            raise ValueError(f"Invalid day-of-week step: {step_str!r}")
        step = int(step_str)

    if term == "*":
        start, end = 0, 6
    elif "-" in term:
        first, last = term.split("-", 1)
        start, end = _weekday(first), _weekday(last)
        if start > end:
            raise ValueError(f"Invalid day-of-week range: {term!r}")
    else:
        start = _weekday(term)
        # crontab: "N/S" runs from N to the end of the range, 7 included
        end = 7 if stepped else start

    return {value % 7 for value in range(start, end + 1, step)}


def translate_day_of_week(field: str) -> str:
    """Translate a crontab day-of-week field into APScheduler weekday names."""
    days: set[int] = set()
    for term in field.split(","):
        if not term:
            raise ValueError(f"Empty day-of-week term in {field!r}")
        days |= _expand_weekdays(term)
    if len(days) == 7:
        return "*"
    return ",".join(_WEEKDAYS[d] for d in sorted(days))


def build_trigger(expression: str, time_zone: str) -> CronTrigger:
    """Build a CronTrigger for ``expression`` bound to the IANA ``time_zone``.

    Raises ValueError for a malformed expression or an unknown zone.
    """
    if not isinstance(expression, str):
        raise ValueError("Cron expression must be a string")
    fields = expression.split()
    if len(fields) == 5:
        second = "0"
        minute, hour, day, month, day_of_week = fields
    elif len(fields) == 6:
        second, minute, hour, day, month, day_of_week = fields
    else:
        raise ValueError(
            f"Wrong number of fields; got {len(fields)}, expected 5 or 6"
        )
    return CronTrigger(
        second=second,
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=translate_day_of_week(day_of_week),
        timezone=resolve_time_zone(time_zone),
    )


def validate(expression: str, time_zone: str | None = None) -> bool:
    """True if ``expression`` is a valid 5/6-field cron expression.

    When ``time_zone`` is given the zone must be known as well. Never raises.
    """
    try:
        build_trigger(expression, time_zone or "UTC")
    except (ValueError, TypeError, KeyError):
        return False
    return True


@dataclass
class TriggerHandle:
    """Cancellable binding of one cron expression to one scheduler job."""

    job_id: str
    time_zone: str
    _job: Any

    def cancel(self) -> None:
        """Remove the binding. Safe to call more than once."""
        try:
            self._job.remove()
        except JobLookupError:
            pass

    @property
    def next_fire_time(self) -> datetime | None:
        # Pending jobs (scheduler not started yet) have no next_run_time.
        return getattr(self._job, "next_run_time", None)


def schedule(
    scheduler: BaseScheduler,
    expression: str,
    time_zone: str,
    callback: Callable[..., Any],
    job_id: str,
    args: Sequence[Any] = (),
) -> TriggerHandle:
    """Fire ``callback(*args)`` at every occurrence of ``expression`` in ``time_zone``."""
    trigger = build_trigger(expression, time_zone)
    job = scheduler.add_job(
        callback,
        trigger=trigger,
        id=job_id,
        args=list(args),
        replace_existing=True,
    )
    return TriggerHandle(job_id=job_id, time_zone=time_zone, _job=job)
