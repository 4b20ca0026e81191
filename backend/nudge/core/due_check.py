from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from ..models.reminders import LegacyReminder, RecurringReminder, ReminderId
from .occurrences import OccurrenceSet


@dataclass(frozen=True)
class DueSignal:
    reminder_id: ReminderId
    schedule_index: Optional[int]  # None for legacy reminders
    time: datetime


def scan(
    reminders: Iterable[LegacyReminder | RecurringReminder],
    now: datetime,
) -> List[DueSignal]:
    """
    Return one signal per occurrence that matured since the last scan and mark
    it notified, so a second scan with the same now returns nothing for it.
    """
    signals: List[DueSignal] = []

    for r in reminders:
        if r.completed:
            continue

        if isinstance(r, LegacyReminder):
            if not r.notified and r.time is not None and r.time <= now:
                r.notified = True
                signals.append(DueSignal(reminder_id=r.id, schedule_index=None, time=r.time))
            continue

        occurrences = OccurrenceSet(r)
        for occ in occurrences.due(now):
            occurrences.mark_notified(occ)
            signals.append(
                DueSignal(reminder_id=r.id, schedule_index=occ.schedule_index, time=occ.time)
            )

    return signals
