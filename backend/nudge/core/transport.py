from __future__ import annotations

import asyncio
from typing import Any, Dict, Set

from fastapi import Request


class EventKind:
    REMINDER_TRIGGERED = "reminder.triggered"
    REMINDER_SNOOZED = "reminder.snoozed"
    REMINDER_COMPLETED = "reminder.completed"
    REMINDERS_REPLACED = "reminders.replaced"
    APP_OPEN = "app.open"


Event = Dict[str, Any]


class Broadcaster:
    """
    Fire-and-forget fan-out to whoever is listening (the open foreground
    app, usually). Slow listeners lose events instead of blocking the worker.
    """

    def __init__(self, max_queue: int = 100):
        self._max_queue = max_queue
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def listener_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    async def broadcast(self, event_kind: str, payload: Dict[str, Any]) -> int:
        event: Event = {"type": event_kind, "payload": payload}
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                print(f"[transport] listener queue full, dropping {event_kind}")
        return delivered


# FastAPI dependency
def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster
