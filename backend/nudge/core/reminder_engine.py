from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from fastapi import Request

from ..config import settings
from ..models.reminders import (
    LegacyReminder,
    RecurringReminder,
    ReminderId,
    parse_reminders,
    reminder_to_record,
)
from .due_check import DueSignal, scan
from .errors import NotFound, ReminderEngineError
from .lifecycle import complete, find_reminder, snooze
from .transport import EventKind

AnyReminder = LegacyReminder | RecurringReminder
RepromptKey = Tuple[str, Optional[int]]

ACTIONS = ("snooze", "complete")


class ReminderPersistence(Protocol):
    async def load(self) -> List[AnyReminder]: ...

    async def save(self, reminders: Sequence[AnyReminder]) -> None: ...


class ReminderNotifier(Protocol):
    async def present(self, reminder_id, title: str, body: str, actions: Sequence[str] = ...) -> None: ...

    async def dismiss(self, reminder_id) -> Any: ...


class ReminderTransport(Protocol):
    async def broadcast(self, event_kind: str, payload: Dict[str, Any]) -> Any: ...


def _copy_all(reminders: Iterable[AnyReminder]) -> List[AnyReminder]:
    return [r.model_copy(deep=True) for r in reminders]


def notification_text(reminder: AnyReminder) -> Tuple[str, str]:
    title = f"⏰ {reminder.title or 'Reminder'}"
    body = reminder.description or "You have a pending reminder!"
    return title, body


class ReminderWorker:
    """
    Owns the in-memory working set and runs every scan and lifecycle action
    under one lock, so ticks never overlap and no scan sees a half-applied
    action.

    Mutations are applied to a copy, persisted, and only then swapped in: a
    failed save leaves the working set as it was and the same call can be
    retried.
    """

    def __init__(
        self,
        persistence: ReminderPersistence,
        notifier: ReminderNotifier,
        transport: ReminderTransport,
        *,
        reprompt_after_seconds: float = settings.reprompt_after_seconds,
        default_snooze_minutes: int = settings.default_snooze_minutes,
    ):
        self.persistence = persistence
        self.notifier = notifier
        self.transport = transport
        self.reprompt_after_seconds = reprompt_after_seconds
        self.default_snooze_minutes = default_snooze_minutes

        self._lock = asyncio.Lock()
        self._reminders: Optional[List[AnyReminder]] = None
        self._reprompts: Dict[RepromptKey, asyncio.Task] = {}
        self._alarm: Optional[asyncio.Task] = None

        self.running = False
        self.last_tick_at: Optional[datetime] = None

    # ---------- Working set ----------

    @property
    def reminders(self) -> List[AnyReminder]:
        return list(self._reminders or [])

    async def load(self) -> List[AnyReminder]:
        async with self._lock:
            self._reminders = await self.persistence.load()
            self._reconcile_reprompts()
            return self.reminders

    async def snapshot(self) -> List[AnyReminder]:
        """Consistent copy of the working set, loading it first if needed."""
        async with self._lock:
            return _copy_all(await self._working_set())

    async def _working_set(self) -> List[AnyReminder]:
        if self._reminders is None:
            self._reminders = await self.persistence.load()
        return self._reminders

    # ---------- Entry points ----------

    async def on_tick(self, now: Optional[datetime] = None) -> List[DueSignal]:
        now = now or datetime.now()
        async with self._lock:
            draft = _copy_all(await self._working_set())
            signals = scan(draft, now)
            if signals:
                await self.persistence.save(draft)
                self._reminders = draft
            self.last_tick_at = now

            for signal in signals:
                reminder = find_reminder(draft, signal.reminder_id)
                await self._present(reminder)
                await self.transport.broadcast(
                    EventKind.REMINDER_TRIGGERED,
                    {
                        "reminderId": signal.reminder_id,
                        "scheduleIndex": signal.schedule_index,
                        "time": signal.time.isoformat(),
                        "reminder": reminder_to_record(reminder),
                    },
                )
                self._schedule_reprompt((str(signal.reminder_id), signal.schedule_index))

        return signals

    async def on_action(
        self,
        reminder_id: ReminderId,
        action: str,
        minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Optional[AnyReminder]:
        """
        Apply a snooze or complete to one reminder. Returns the updated
        reminder, or None when the id is unknown.
        """
        if action not in ACTIONS:
            raise ValueError(f"action must be one of {ACTIONS}, got {action!r}")
        now = now or datetime.now()
        if minutes is None:
            minutes = self.default_snooze_minutes

        async with self._lock:
            draft = _copy_all(await self._working_set())
            if action == "snooze":
                updated = snooze(draft, reminder_id, minutes, now)
            else:
                updated = complete(draft, reminder_id, now)
            if updated is None:
                return None

            await self.persistence.save(draft)
            self._reminders = draft
            self._reconcile_reprompts()

            await self._dismiss(updated.id)
            if action == "snooze":
                await self.transport.broadcast(
                    EventKind.REMINDER_SNOOZED,
                    {"reminderId": updated.id, "minutes": minutes, "reminder": reminder_to_record(updated)},
                )
            else:
                await self.transport.broadcast(
                    EventKind.REMINDER_COMPLETED,
                    {"reminderId": updated.id, "reminder": reminder_to_record(updated)},
                )
            return updated

    async def on_reminders_replaced(self, reminders: Iterable[Any]) -> List[AnyReminder]:
        """Replace the working set wholesale with the foreground app's copy."""
        parsed = parse_reminders(list(reminders))
        async with self._lock:
            await self.persistence.save(parsed)
            self._reminders = parsed
            self._reconcile_reprompts()
            await self.transport.broadcast(EventKind.REMINDERS_REPLACED, {"count": len(parsed)})
            return self.reminders

    async def on_notification_click(
        self,
        reminder_id: ReminderId,
        action: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Optional[AnyReminder]:
        """Snooze/complete buttons act on the reminder; any other click opens the app."""
        if action in ACTIONS:
            return await self.on_action(reminder_id, action, now=now)
        await self.transport.broadcast(EventKind.APP_OPEN, {"reminderId": reminder_id})
        return None

    # ---------- Wake alarm ----------

    def schedule_alarm(self, delay_seconds: float) -> None:
        """Run a check after delay_seconds; a new alarm replaces the pending one."""
        if self._alarm is not None and not self._alarm.done():
            self._alarm.cancel()
        self._alarm = asyncio.create_task(self._alarm_after(delay_seconds))

    async def _alarm_after(self, delay_seconds: float) -> None:
        await asyncio.sleep(max(delay_seconds, 0))
        try:
            await self.on_tick()
        except ReminderEngineError as exc:
            print(f"[reminder_engine] alarm check failed: {exc}")
        except Exception as exc:
            print(f"[reminder_engine] alarm check crashed ({type(exc).__name__}): {exc!r}")

    @property
    def alarm_pending(self) -> bool:
        return self._alarm is not None and not self._alarm.done()

    # ---------- Re-prompts ----------

    @property
    def pending_reprompts(self) -> List[RepromptKey]:
        return list(self._reprompts)

    def _schedule_reprompt(self, key: RepromptKey) -> None:
        if self.reprompt_after_seconds <= 0:
            return
        self._cancel_reprompt(key)
        self._reprompts[key] = asyncio.create_task(self._reprompt_after(key, self.reprompt_after_seconds))

    def _cancel_reprompt(self, key: RepromptKey) -> None:
        task = self._reprompts.pop(key, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    def _reconcile_reprompts(self) -> None:
        # cleared notified flags (snooze, complete, replacement) cancel the nag
        for key in list(self._reprompts):
            if self._notified_reminder(key) is None:
                self._cancel_reprompt(key)

    def _notified_reminder(self, key: RepromptKey) -> Optional[AnyReminder]:
        reminder_id, schedule_index = key
        try:
            r = find_reminder(self._reminders or [], reminder_id)
        except NotFound:
            return None
        if r.completed:
            return None
        if isinstance(r, LegacyReminder):
            return r if schedule_index is None and r.notified else None
        for occ in r.next_executions or []:
            if occ.schedule_index == schedule_index and occ.notified:
                return r
        return None

    async def _reprompt_after(self, key: RepromptKey, delay: float) -> None:
        await asyncio.sleep(delay)
        async with self._lock:
            if self._reprompts.get(key) is asyncio.current_task():
                del self._reprompts[key]
            reminder = self._notified_reminder(key)
            if reminder is None:
                return
            await self._present(reminder)
            self._schedule_reprompt(key)

    # ---------- Collaborators ----------

    async def _present(self, reminder: AnyReminder) -> None:
        title, body = notification_text(reminder)
        try:
            await self.notifier.present(reminder.id, title, body)
        except Exception as exc:
            print(f"[reminder_engine] failed to present reminder {reminder.id}: {exc}")

    async def _dismiss(self, reminder_id: ReminderId) -> None:
        try:
            await self.notifier.dismiss(reminder_id)
        except Exception as exc:
            print(f"[reminder_engine] failed to dismiss reminder {reminder_id}: {exc}")

    # ---------- Status ----------

    def status(self) -> Dict[str, Any]:
        reminders = self.reminders
        return {
            "running": self.running,
            "last_tick_at": self.last_tick_at,
            "loaded": self._reminders is not None,
            "total": len(reminders),
            "active": sum(1 for r in reminders if not r.completed),
            "pending_reprompts": len(self._reprompts),
            "alarm_pending": self.alarm_pending,
        }

    async def close(self) -> None:
        tasks = list(self._reprompts.values())
        if self._alarm is not None:
            tasks.append(self._alarm)
        self._reprompts.clear()
        self._alarm = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


# ---------- Background scheduler ----------


async def occurrence_scheduler_loop(
    worker: ReminderWorker,
    interval_seconds: int = settings.tick_interval_seconds,
) -> None:
    """
    Background loop that periodically checks the working set for due reminders.
    """
    worker.running = True
    try:
        while True:
            try:
                await worker.on_tick()
            except ReminderEngineError as exc:
                print(f"[reminder_engine] tick failed: {exc}")
            except Exception as exc:
                print(f"[reminder_engine] tick crashed ({type(exc).__name__}): {exc!r}")
            await asyncio.sleep(interval_seconds)
    finally:
        worker.running = False


# FastAPI dependency
def get_worker(request: Request) -> ReminderWorker:
    return request.app.state.worker
