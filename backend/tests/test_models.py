from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from nudge.models.reminders import (
    ComplexSchedule,
    IntervalSchedule,
    LegacyReminder,
    RecurringReminder,
    SpecificSchedule,
    UnrecognizedSchedule,
    parse_reminders,
    reminder_to_record,
)

RECURRING = {
    "id": 1710331200000,
    "title": "Water the plants",
    "description": "Balcony first",
    "completed": False,
    "createdAt": "2024-03-01T10:00:00",
    "color": "#33aa55",
    "schedules": [
        {"kind": "specific", "recurrenceType": "weekly", "recurrenceEnd": "2024-06-01T00:00:00"},
        {"kind": "interval", "intervalValue": 90, "intervalUnit": "minutes"},
        {"kind": "complex", "type": "weekly", "time": "07:45", "weekdays": [1, 3, 5]},
        {"kind": "moon-phase", "phase": "full"},
    ],
    "nextExecutions": [
        {"scheduleIndex": 0, "time": "2024-03-13T08:00:00", "notified": True},
        {"scheduleIndex": 1, "time": "2024-03-13T13:30:00", "notified": False},
        {"scheduleIndex": 2, "time": "2024-03-15T07:45:00", "notified": False},
        {"scheduleIndex": 3, "time": "2024-03-25T00:00:00", "notified": False},
    ],
}

LEGACY = {
    "id": "r-legacy",
    "title": "Call the dentist",
    "time": "2024-03-13T11:00:00",
    "notified": False,
    "completed": False,
}


def test_records_resolve_to_legacy_or_recurring():
    legacy, recurring = parse_reminders([LEGACY, RECURRING])
    assert isinstance(legacy, LegacyReminder)
    assert isinstance(recurring, RecurringReminder)
    assert legacy.time == datetime(2024, 3, 13, 11, 0)


def test_schedule_kinds_are_resolved_once():
    (recurring,) = parse_reminders([RECURRING])
    kinds = [type(s) for s in recurring.schedules]
    assert kinds == [SpecificSchedule, IntervalSchedule, ComplexSchedule, UnrecognizedSchedule]
    assert recurring.schedules[2].weekdays == [1, 3, 5]
    assert recurring.next_executions[1].schedule_index == 1


NULL_COLLECTIONS = {"id": "x", "title": "a", "schedules": None, "nextExecutions": None}


@pytest.mark.parametrize("record", [LEGACY, RECURRING, NULL_COLLECTIONS])
def test_record_round_trip_is_lossless(record):
    (reminder,) = parse_reminders([record])
    assert reminder_to_record(reminder) == record


def test_round_trip_does_not_add_defaults():
    record = {"id": 5, "title": "Bare", "schedules": [{"kind": "specific"}]}
    (reminder,) = parse_reminders([record])
    assert reminder_to_record(reminder) == record


def test_mutations_show_up_in_the_record():
    (reminder,) = parse_reminders([RECURRING])
    reminder.next_executions[0].notified = False
    reminder.completed = True
    record = reminder_to_record(reminder)
    assert record["nextExecutions"][0]["notified"] is False
    assert record["completed"] is True
    assert record["color"] == "#33aa55"


def test_utc_times_become_local_wall_clock():
    (legacy,) = parse_reminders([dict(LEGACY, time="2024-03-13T11:00:00Z")])
    expected = datetime(2024, 3, 13, 11, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    assert legacy.time == expected
    assert legacy.time.tzinfo is None


def test_record_without_id_is_rejected():
    with pytest.raises(ValidationError):
        parse_reminders([{"title": "no id", "time": "2024-03-13T11:00:00"}])
