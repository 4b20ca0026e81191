class ReminderEngineError(Exception):
    """Base class for errors raised by the reminder engine."""


class NotFound(ReminderEngineError):
    def __init__(self, reminder_id):
        super().__init__(f"reminder {reminder_id!r} not found")
        self.reminder_id = reminder_id


class MalformedSchedule(ReminderEngineError):
    """A schedule whose kind, unit or fields cannot be interpreted."""


class PersistenceFailure(ReminderEngineError):
    """The reminder store could not load or save the collection."""
