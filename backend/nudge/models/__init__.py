from .records import ReminderRecord
from .notification import NotificationEvent
from .reminders import (
    ComplexSchedule,
    IntervalSchedule,
    LegacyReminder,
    Occurrence,
    RecurringReminder,
    SpecificSchedule,
    UnrecognizedSchedule,
)


__all__ = [
    "ReminderRecord",
    "NotificationEvent",
    "ComplexSchedule",
    "IntervalSchedule",
    "LegacyReminder",
    "Occurrence",
    "RecurringReminder",
    "SpecificSchedule",
    "UnrecognizedSchedule",
]
