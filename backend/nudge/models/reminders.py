"""
Reminder records as the foreground app stores them.

Field names stay camelCase on the wire (aliases) and any field the worker does
not know about is kept, so a record survives load/save unchanged.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    ValidationError,
    field_validator,
)


def _to_local_naive(value: datetime) -> datetime:
    # the app writes toISOString() (UTC, "Z"); the worker compares wall-clock times
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


Timestamp = Annotated[datetime, AfterValidator(_to_local_naive)]
ReminderId = Union[int, str]


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


# ---------- Schedules ----------


class SpecificSchedule(_Record):
    kind: Literal["specific"]
    recurrence_type: str = Field("none", alias="recurrenceType")  # none, daily, weekly, monthly
    recurrence_end: Optional[Timestamp] = Field(None, alias="recurrenceEnd")


class IntervalSchedule(_Record):
    kind: Literal["interval"]
    interval_value: Optional[int] = Field(None, alias="intervalValue")
    interval_unit: Optional[str] = Field(None, alias="intervalUnit")  # minutes, hours, days
    interval_end: Optional[Timestamp] = Field(None, alias="intervalEnd")


class ComplexSchedule(_Record):
    kind: Literal["complex"]
    complex_type: Optional[str] = Field(None, alias="type")  # time, daily, weekly, monthly
    at: Optional[Timestamp] = Field(None, alias="datetime")
    time_of_day: Optional[str] = Field(None, alias="time")  # "HH:MM"
    weekdays: List[int] = Field(default_factory=list)  # 0=Sun .. 6=Sat
    day_of_month: Optional[int] = Field(None, alias="dayOfMonth")


class UnrecognizedSchedule(_Record):
    """A schedule the worker cannot interpret; kept verbatim so saving does not lose it."""

    kind: Optional[Any] = None


Schedule = Union[SpecificSchedule, IntervalSchedule, ComplexSchedule, UnrecognizedSchedule]

_SCHEDULE_KINDS = {
    "specific": SpecificSchedule,
    "interval": IntervalSchedule,
    "complex": ComplexSchedule,
}


def parse_schedule(raw: Any) -> Schedule:
    if isinstance(raw, (SpecificSchedule, IntervalSchedule, ComplexSchedule, UnrecognizedSchedule)):
        return raw
    if not isinstance(raw, dict):
        raise ValueError("schedule must be an object")
    model = _SCHEDULE_KINDS.get(raw.get("kind"))
    if model is not None:
        try:
            return model.model_validate(raw)
        except ValidationError:
            pass
    return UnrecognizedSchedule.model_validate(raw)


# ---------- Occurrences ----------


class Occurrence(_Record):
    schedule_index: int = Field(alias="scheduleIndex")
    time: Timestamp
    notified: bool = False


# ---------- Reminders ----------


class _ReminderBase(_Record):
    id: ReminderId
    title: str = ""
    description: Optional[str] = None
    completed: bool = False


class LegacyReminder(_ReminderBase):
    """Single-time reminder predating multi-schedule support."""

    time: Optional[Timestamp] = None
    notified: bool = False


class RecurringReminder(_ReminderBase):
    # null collections stay null on the way back out
    schedules: Optional[List[Schedule]] = Field(default_factory=list)
    next_executions: Optional[List[Occurrence]] = Field(default_factory=list, alias="nextExecutions")

    @field_validator("schedules", mode="before")
    @classmethod
    def parse_schedules(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return v
        return [parse_schedule(item) for item in v]


def _reminder_tag(value: Any) -> str:
    if isinstance(value, dict):
        return "recurring" if "schedules" in value else "legacy"
    return "recurring" if isinstance(value, RecurringReminder) else "legacy"


Reminder = Annotated[
    Union[
        Annotated[LegacyReminder, Tag("legacy")],
        Annotated[RecurringReminder, Tag("recurring")],
    ],
    Discriminator(_reminder_tag),
]

_reminders_adapter = TypeAdapter(List[Reminder])


def parse_reminders(records: Any) -> list[LegacyReminder | RecurringReminder]:
    """Resolve raw records into the legacy/recurring variants."""
    return _reminders_adapter.validate_python(records)


def reminder_to_record(reminder: LegacyReminder | RecurringReminder) -> dict:
    return reminder.model_dump(mode="json", by_alias=True, exclude_unset=True)
