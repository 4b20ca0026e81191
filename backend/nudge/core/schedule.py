from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Iterable, Optional

from ..models.reminders import (
    ComplexSchedule,
    IntervalSchedule,
    Schedule,
    SpecificSchedule,
)
from .errors import MalformedSchedule

_SPECIFIC_STEPS = {
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
}

_INTERVAL_UNITS = {"minutes", "hours", "days"}


def add_months(value: datetime, months: int) -> datetime:
    """
    Move value by whole calendar months, keeping the day of month.

    A day that does not exist in the target month overflows into the next one
    (Jan 31 + 1 month = Mar 3, Mar 2 in a leap year), which is how the
    foreground app's date arithmetic behaves.
    """
    month_index = value.month - 1 + months
    try:
        first = value.replace(year=value.year + month_index // 12, month=month_index % 12 + 1, day=1)
        return first + timedelta(days=value.day - 1)
    except (OverflowError, ValueError):
        raise MalformedSchedule(f"{value.isoformat()} + {months} months is out of range")


def _step(reference: datetime, delta: timedelta) -> datetime:
    try:
        return reference + delta
    except OverflowError:
        raise MalformedSchedule(f"{reference.isoformat()} + {delta} is out of range")


def _parse_time_str(t: Optional[str]) -> time:
    if not t:
        raise MalformedSchedule("time of day is required")
    try:
        hour_str, minute_str = t.split(":")[:2]
        return time(hour=int(hour_str), minute=int(minute_str))
    except ValueError:
        raise MalformedSchedule(f"time of day must be HH:MM, got {t!r}")


def _app_weekday(value: datetime) -> int:
    """Weekday in the app's numbering: 0=Sun .. 6=Sat."""
    return (value.weekday() + 1) % 7


def weekly_offset(weekdays: Iterable[int], today: int, time_still_ahead: bool) -> int:
    """
    Days from today to the next configured weekday.

    Today only counts when the time of day is still ahead; otherwise the same
    weekday lands a full week later. Order and duplicates in weekdays do not
    matter.
    """
    offsets = []
    for day in weekdays:
        offset = (day - today) % 7
        if offset == 0 and not time_still_ahead:
            offset = 7
        offsets.append(offset)
    if not offsets:
        raise MalformedSchedule("weekly schedule has no weekdays")
    return min(offsets)


def _next_specific(schedule: SpecificSchedule, reference: datetime) -> Optional[datetime]:
    recurrence = (schedule.recurrence_type or "none").lower()

    if recurrence == "none":
        return None
    if recurrence in _SPECIFIC_STEPS:
        result = _step(reference, _SPECIFIC_STEPS[recurrence])
    elif recurrence == "monthly":
        result = add_months(reference, 1)
    else:
        raise MalformedSchedule(f"unknown recurrenceType {schedule.recurrence_type!r}")

    if schedule.recurrence_end is not None and result > schedule.recurrence_end:
        return None
    return result


def _next_interval(schedule: IntervalSchedule, reference: datetime) -> Optional[datetime]:
    unit = (schedule.interval_unit or "").lower()
    if unit not in _INTERVAL_UNITS:
        raise MalformedSchedule(f"unknown intervalUnit {schedule.interval_unit!r}")
    if schedule.interval_value is None or schedule.interval_value < 1:
        raise MalformedSchedule(f"intervalValue must be a positive integer, got {schedule.interval_value!r}")

    try:
        delta = timedelta(**{unit: schedule.interval_value})
    except OverflowError:
        raise MalformedSchedule(f"intervalValue {schedule.interval_value} {unit} is out of range")
    result = _step(reference, delta)
    if schedule.interval_end is not None and result > schedule.interval_end:
        return None
    return result


def _next_complex(schedule: ComplexSchedule, now: datetime) -> Optional[datetime]:
    kind = (schedule.complex_type or "").lower()

    if kind == "time":
        if schedule.at is None:
            raise MalformedSchedule("complex time schedule has no datetime")
        return schedule.at

    t = _parse_time_str(schedule.time_of_day)
    today_at = datetime.combine(now.date(), t)

    if kind == "daily":
        if today_at > now:
            return today_at
        return _step(today_at, timedelta(days=1))

    if kind == "weekly":
        days = list(schedule.weekdays or [])
        if any(d < 0 or d > 6 for d in days):
            raise MalformedSchedule(f"weekdays must be between 0 and 6, got {days}")
        offset = weekly_offset(days, _app_weekday(now), today_at > now)
        return _step(today_at, timedelta(days=offset))

    if kind == "monthly":
        dom = schedule.day_of_month
        if dom is None or not 1 <= dom <= 31:
            raise MalformedSchedule(f"dayOfMonth must be between 1 and 31, got {dom!r}")
        month_start = today_at.replace(day=1)
        candidate = month_start + timedelta(days=dom - 1)
        if candidate > now:
            return candidate
        return _step(add_months(month_start, 1), timedelta(days=dom - 1))

    raise MalformedSchedule(f"unknown complex schedule type {schedule.complex_type!r}")


def next_occurrence(
    schedule: Schedule,
    reference: datetime,
    now: Optional[datetime] = None,
) -> Optional[datetime]:
    """
    Next firing time of one schedule, or None when it has no more occurrences.

    specific and interval schedules step forward from reference; complex
    schedules are anchored to now (wall clock), except the fixed "time" alarm
    which always returns its own datetime.
    Raises MalformedSchedule for schedules that cannot be interpreted.
    """
    if isinstance(schedule, SpecificSchedule):
        return _next_specific(schedule, reference)
    if isinstance(schedule, IntervalSchedule):
        return _next_interval(schedule, reference)
    if isinstance(schedule, ComplexSchedule):
        return _next_complex(schedule, now or datetime.now())
    raise MalformedSchedule(f"unrecognized schedule kind {getattr(schedule, 'kind', None)!r}")
