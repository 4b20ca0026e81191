from __future__ import annotations

from datetime import timedelta

from nudge.core.due_check import DueSignal, scan
from nudge.models.reminders import parse_reminders


def legacy(now, offset_minutes, **extra):
    record = {
        "id": "legacy",
        "title": "Legacy",
        "time": now + timedelta(minutes=offset_minutes),
        "notified": False,
    }
    record.update(extra)
    return record


def recurring(now, *offsets, reminder_id="multi", notified=False):
    return {
        "id": reminder_id,
        "title": "Multi",
        "schedules": [{"kind": "interval", "intervalValue": 1, "intervalUnit": "days"} for _ in offsets],
        "nextExecutions": [
            {"scheduleIndex": i, "time": now + timedelta(minutes=off), "notified": notified}
            for i, off in enumerate(offsets)
        ],
    }


def test_legacy_due_when_time_has_passed(now):
    reminders = parse_reminders([legacy(now, -1)])
    signals = scan(reminders, now)
    assert signals == [DueSignal(reminder_id="legacy", schedule_index=None, time=now - timedelta(minutes=1))]
    assert reminders[0].notified is True


def test_legacy_due_exactly_at_its_time(now):
    assert len(scan(parse_reminders([legacy(now, 0)]), now)) == 1


def test_legacy_in_the_future_is_not_due(now):
    reminders = parse_reminders([legacy(now, 5)])
    assert scan(reminders, now) == []
    assert reminders[0].notified is False


def test_scan_is_idempotent_per_occurrence(now):
    reminders = parse_reminders([legacy(now, -1), recurring(now, -10, -5)])
    first = scan(reminders, now)
    assert len(first) == 3
    assert scan(reminders, now) == []


def test_completed_reminders_are_skipped(now):
    reminders = parse_reminders([legacy(now, -1, completed=True), dict(recurring(now, -1), completed=True)])
    assert scan(reminders, now) == []


def test_each_matured_occurrence_signals_separately(now):
    reminders = parse_reminders([recurring(now, -10, 30, -1)])
    signals = scan(reminders, now)
    assert [(s.reminder_id, s.schedule_index) for s in signals] == [("multi", 0), ("multi", 2)]
    flags = [o.notified for o in reminders[0].next_executions]
    assert flags == [True, False, True]


def test_already_notified_occurrences_stay_quiet(now):
    reminders = parse_reminders([recurring(now, -10, notified=True)])
    assert scan(reminders, now) == []


def test_malformed_schedule_does_not_stop_the_scan(now):
    broken = {
        "id": "broken",
        "schedules": [{"kind": "interval", "intervalUnit": "fortnights", "intervalValue": 1}],
        "nextExecutions": [{"scheduleIndex": 0, "time": now - timedelta(minutes=2), "notified": False}],
    }
    reminders = parse_reminders([broken, legacy(now, -1)])
    assert [s.reminder_id for s in scan(reminders, now)] == ["broken", "legacy"]


def test_interval_scenario_is_due_once(now):
    reminders = parse_reminders(
        [
            {
                "id": "r1",
                "schedules": [{"kind": "interval", "intervalValue": 10, "intervalUnit": "minutes"}],
                "nextExecutions": [{"scheduleIndex": 0, "time": now - timedelta(minutes=1), "notified": False}],
            }
        ]
    )
    assert [s.reminder_id for s in scan(reminders, now)] == ["r1"]
    assert reminders[0].next_executions[0].notified is True
