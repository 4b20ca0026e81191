from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence

from sqlalchemy.orm import Session, sessionmaker

from ..models import NotificationEvent
from .database import SessionLocal

Notification = Dict[str, Any]
NotificationHandler = Callable[[Notification], Awaitable[None]]

REMINDER_CHANNEL = "reminder"
REMINDER_ACTIONS = ("complete", "snooze")
UNDELIVERED = ("PENDING", "SENDING", "FAILED")


def notification_tag(reminder_id) -> str:
    return f"reminder-{reminder_id}"


class QueuedNotifier:
    """
    Writes reminder notifications to the notification_events outbox for a
    consumer to present, and forwards them to an optional in-process handler.
    The worker decides when to notify; the consumer decides how.
    """

    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        handler: Optional[NotificationHandler] = None,
    ):
        self._session_factory = session_factory
        self._handler = handler

    def register_handler(self, handler: NotificationHandler) -> None:
        self._handler = handler

    async def present(
        self,
        reminder_id,
        title: str,
        body: str,
        actions: Sequence[str] = REMINDER_ACTIONS,
    ) -> None:
        notification: Notification = {
            "channel": REMINDER_CHANNEL,
            "type": "present",
            "reminder_id": reminder_id,
            "tag": notification_tag(reminder_id),
            "title": title,
            "body": body,
            "actions": list(actions),
        }

        # Same tag replaces any undelivered notification for this reminder
        db: Session = self._session_factory()
        try:
            self._retire_undelivered(db, reminder_id, status="DISMISSED")
            db.add(
                NotificationEvent(
                    channel=REMINDER_CHANNEL,
                    reminder_id=str(reminder_id),
                    payload_json=json.dumps(notification),
                    status="PENDING",
                )
            )
            db.commit()
        finally:
            db.close()

        await self._forward(notification)

    async def dismiss(self, reminder_id) -> int:
        db: Session = self._session_factory()
        try:
            dismissed = self._retire_undelivered(db, reminder_id, status="DISMISSED")
            db.commit()
        finally:
            db.close()

        await self._forward(
            {
                "channel": REMINDER_CHANNEL,
                "type": "dismiss",
                "reminder_id": reminder_id,
                "tag": notification_tag(reminder_id),
            }
        )
        return dismissed

    def _retire_undelivered(self, db: Session, reminder_id, status: str) -> int:
        now = datetime.utcnow()
        events = (
            db.query(NotificationEvent)
            .filter(
                NotificationEvent.reminder_id == str(reminder_id),
                NotificationEvent.sent_at.is_(None),
                NotificationEvent.status.in_(UNDELIVERED),
            )
            .all()
        )
        for evt in events:
            evt.status = status
            evt.dismissed_at = now
            evt.locked_at = None
            evt.locked_by = None
        return len(events)

    async def _forward(self, notification: Notification) -> None:
        handler = self._handler
        if handler:
            try:
                await handler(notification)
            except Exception as exc:
                print(f"[notifications] handler error: {exc}")
