from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..models.reminders import LegacyReminder, RecurringReminder, ReminderId
from .errors import MalformedSchedule, NotFound
from .occurrences import OccurrenceSet
from .schedule import next_occurrence

AnyReminder = LegacyReminder | RecurringReminder


def find_reminder(reminders: Sequence[AnyReminder], reminder_id: ReminderId) -> AnyReminder:
    # ids arrive as strings from URLs and notification payloads
    wanted = str(reminder_id)
    for r in reminders:
        if str(r.id) == wanted:
            return r
    raise NotFound(reminder_id)


def snooze(
    reminders: Sequence[AnyReminder],
    reminder_id: ReminderId,
    minutes: int,
    now: datetime,
) -> Optional[AnyReminder]:
    """
    Push every occurrence that is already due forward by minutes and clear its
    notified flag. Occurrences still in the future are left alone.
    Returns None (and does nothing) when the reminder is unknown.
    """
    try:
        r = find_reminder(reminders, reminder_id)
    except NotFound as exc:
        print(f"[lifecycle] snooze ignored: {exc}")
        return None

    if r.completed:
        return r

    if isinstance(r, LegacyReminder):
        r.time = (r.time or now) + timedelta(minutes=minutes)
        r.notified = False
        return r

    occurrences = OccurrenceSet(r)
    for occ in occurrences.overdue(now):
        occurrences.shift(occ, minutes)
    return r


def complete(
    reminders: Sequence[AnyReminder],
    reminder_id: ReminderId,
    now: datetime,
) -> Optional[AnyReminder]:
    """
    Retire a one-shot reminder, or move each due occurrence of a recurring one
    to its schedule's next time. Exhausted schedules lose their occurrence and
    the reminder completes once none are left.
    Returns None (and does nothing) when the reminder is unknown.
    """
    try:
        r = find_reminder(reminders, reminder_id)
    except NotFound as exc:
        print(f"[lifecycle] complete ignored: {exc}")
        return None

    if r.completed:
        return r

    if isinstance(r, LegacyReminder) or not r.schedules or not r.next_executions:
        r.completed = True
        return r

    occurrences = OccurrenceSet(r)
    keep = []
    for occ in occurrences:
        schedule = occurrences.schedule_for(occ)
        if schedule is None:
            print(f"[lifecycle] reminder {r.id}: dropping occurrence for missing schedule {occ.schedule_index}")
            continue

        if occ.time > now:
            keep.append(occ)
            continue

        try:
            nxt = next_occurrence(schedule, occ.time, now)
        except MalformedSchedule as exc:
            print(f"[lifecycle] reminder {r.id}: schedule {occ.schedule_index} skipped: {exc}")
            nxt = None

        # a fixed alarm hands back its own time; treat that as exhausted
        if nxt is None or nxt <= occ.time:
            continue

        occurrences.reschedule(occ, nxt)
        keep.append(occ)

    occurrences.retain(keep)
    if len(occurrences) == 0:
        r.completed = True
    return r
