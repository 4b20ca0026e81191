from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterator, List, Optional

from ..models.reminders import Occurrence, RecurringReminder, Schedule


class OccurrenceSet:
    """
    Pending occurrences of one recurring reminder.

    Occurrences are tied to schedules by position (scheduleIndex). The set
    edits the reminder's nextExecutions list in place.
    """

    def __init__(self, reminder: RecurringReminder):
        self.reminder = reminder

    def __iter__(self) -> Iterator[Occurrence]:
        return iter(self.reminder.next_executions or [])

    def __len__(self) -> int:
        return len(self.reminder.next_executions or [])

    def schedule_for(self, occ: Occurrence) -> Optional[Schedule]:
        schedules = self.reminder.schedules or []
        if 0 <= occ.schedule_index < len(schedules):
            return schedules[occ.schedule_index]
        return None

    def due(self, now: datetime) -> List[Occurrence]:
        """Matured occurrences that have not been notified yet."""
        return [o for o in self if not o.notified and o.time <= now]

    def overdue(self, now: datetime) -> List[Occurrence]:
        """Every occurrence whose time has come, notified or not."""
        return [o for o in self if o.time <= now]

    def mark_notified(self, occ: Occurrence) -> None:
        occ.notified = True

    def shift(self, occ: Occurrence, minutes: int) -> None:
        occ.time = occ.time + timedelta(minutes=minutes)
        occ.notified = False

    def reschedule(self, occ: Occurrence, when: datetime) -> None:
        occ.time = when
        occ.notified = False

    def retain(self, keep: List[Occurrence]) -> List[Occurrence]:
        """Keep only the given occurrences; returns the dropped ones."""
        kept_ids = {id(o) for o in keep}
        dropped = [o for o in self if id(o) not in kept_ids]
        self.reminder.next_executions = [o for o in self if id(o) in kept_ids]
        return dropped
