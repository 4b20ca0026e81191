from datetime import datetime, timedelta
import json
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..core.reminder_engine import ReminderWorker, get_worker
from ..models import NotificationEvent
from ..models.reminders import reminder_to_record

router = APIRouter(prefix="/notifications", tags=["notifications"])
MAX_ATTEMPTS = 5
CLAIMABLE = ("PENDING", "FAILED")


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    channel: str
    reminder_id: Optional[str]
    payload: dict
    status: str
    attempt_count: int
    last_error: Optional[str]
    created_at: datetime


class FailRequest(BaseModel):
    error_message: str


class AckResponse(BaseModel):
    ok: bool
    id: int
    status: str
    attempt_count: int
    last_error: Optional[str] = None


class ClickRequest(BaseModel):
    action: Optional[str] = None  # "complete", "snooze" or None for a plain click


class ClickResponse(BaseModel):
    ok: bool
    id: int
    action: str
    applied: bool
    reminder: Optional[Dict[str, Any]] = None


def _load_payload(evt: NotificationEvent) -> dict:
    try:
        return json.loads(evt.payload_json)
    except ValueError:
        return {}


def _event_or_404(db: Session, event_id: int) -> NotificationEvent:
    evt = db.get(NotificationEvent, event_id)
    if not evt:
        raise HTTPException(status_code=404, detail="Notification not found")
    return evt


def _release(db: Session, evt: NotificationEvent, status: str) -> AckResponse:
    # a dismissal that raced the delivery wins
    if evt.status != "DISMISSED":
        evt.status = status
    evt.locked_at = None
    evt.locked_by = None
    evt.updated_at = datetime.utcnow()
    db.commit()
    return AckResponse(
        ok=True,
        id=evt.id,
        status=evt.status,
        attempt_count=evt.attempt_count,
        last_error=evt.last_error,
    )


@router.get("/pending", response_model=List[NotificationOut])
def pending_notifications(
    limit: int = Query(50, ge=1, le=100),
    consumer_id: str = Query("webhook-relay", min_length=1, max_length=128),
    lock_seconds: int = Query(60, ge=1, le=3600),
    db: Session = Depends(get_db),
):
    """Claim undelivered reminder notifications for one consumer."""
    now = datetime.utcnow()
    stale_lock = now - timedelta(seconds=lock_seconds)

    claimed = (
        db.query(NotificationEvent)
        .filter(
            NotificationEvent.sent_at.is_(None),
            NotificationEvent.attempt_count < MAX_ATTEMPTS,
            NotificationEvent.status.in_(CLAIMABLE),
            or_(NotificationEvent.locked_at.is_(None), NotificationEvent.locked_at < stale_lock),
        )
        .order_by(NotificationEvent.created_at.asc())
        .limit(limit)
        .all()
    )
    for evt in claimed:
        evt.status = "SENDING"
        evt.locked_at = now
        evt.locked_by = consumer_id
        evt.updated_at = now
    if claimed:
        db.commit()

    return [
        NotificationOut(
            id=evt.id,
            channel=evt.channel,
            reminder_id=evt.reminder_id,
            payload=_load_payload(evt),
            status=evt.status,
            attempt_count=evt.attempt_count,
            last_error=evt.last_error,
            created_at=evt.created_at,
        )
        for evt in claimed
    ]


@router.post("/{event_id}/ack", response_model=AckResponse)
def ack_notification(event_id: int, db: Session = Depends(get_db)):
    evt = _event_or_404(db, event_id)
    evt.sent_at = evt.acked_at = datetime.utcnow()
    return _release(db, evt, "SENT")


@router.post("/{event_id}/fail", response_model=AckResponse)
def fail_notification(event_id: int, payload: FailRequest, db: Session = Depends(get_db)):
    evt = _event_or_404(db, event_id)
    evt.attempt_count = (evt.attempt_count or 0) + 1
    evt.last_error = payload.error_message
    return _release(db, evt, "FAILED")


@router.post("/{event_id}/click", response_model=ClickResponse)
async def click_notification(
    event_id: int,
    payload: Optional[ClickRequest] = None,
    db: Session = Depends(get_db),
    worker: ReminderWorker = Depends(get_worker),
):
    evt = _event_or_404(db, event_id)
    reminder_id = _load_payload(evt).get("reminder_id", evt.reminder_id)
    if reminder_id is None:
        raise HTTPException(status_code=400, detail="Notification is not tied to a reminder")

    action = payload.action if payload else None
    updated = await worker.on_notification_click(reminder_id, action)

    return ClickResponse(
        ok=True,
        id=evt.id,
        action=action if action in ("complete", "snooze") else "open",
        applied=updated is not None,
        reminder=reminder_to_record(updated) if updated is not None else None,
    )
