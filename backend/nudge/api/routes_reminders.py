from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, ValidationError

from ..core.errors import NotFound
from ..core.lifecycle import find_reminder
from ..core.reminder_engine import ReminderWorker, get_worker
from ..models.reminders import reminder_to_record

router = APIRouter(prefix="/reminders", tags=["reminders"])


# ---------- Pydantic schemas ----------


class SnoozeRequest(BaseModel):
    minutes: Optional[int] = Field(None, ge=1, le=24 * 60)


class ActionResponse(BaseModel):
    applied: bool
    reminder: Optional[Dict[str, Any]] = None


class ReplaceResponse(BaseModel):
    count: int
    reminders: List[Dict[str, Any]]


# ---------- Endpoints ----------


@router.get("", response_model=List[Dict[str, Any]])
async def list_reminders(worker: ReminderWorker = Depends(get_worker)):
    reminders = await worker.snapshot()
    return [reminder_to_record(r) for r in reminders]


@router.put("", response_model=ReplaceResponse)
async def replace_reminders(
    payload: List[Dict[str, Any]],
    worker: ReminderWorker = Depends(get_worker),
):
    try:
        reminders = await worker.on_reminders_replaced(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False))

    return ReplaceResponse(
        count=len(reminders),
        reminders=[reminder_to_record(r) for r in reminders],
    )


@router.get("/{reminder_id}", response_model=Dict[str, Any])
async def get_reminder(reminder_id: str, worker: ReminderWorker = Depends(get_worker)):
    reminders = await worker.snapshot()
    try:
        r = find_reminder(reminders, reminder_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return reminder_to_record(r)


@router.post("/{reminder_id}/snooze", response_model=ActionResponse)
async def snooze_reminder(
    reminder_id: str,
    payload: Optional[SnoozeRequest] = None,
    worker: ReminderWorker = Depends(get_worker),
):
    minutes = payload.minutes if payload else None
    updated = await worker.on_action(reminder_id, "snooze", minutes=minutes)
    # unknown ids are a no-op: the notification outlived its reminder
    if updated is None:
        return ActionResponse(applied=False)
    return ActionResponse(applied=True, reminder=reminder_to_record(updated))


@router.post("/{reminder_id}/complete", response_model=ActionResponse)
async def complete_reminder(reminder_id: str, worker: ReminderWorker = Depends(get_worker)):
    updated = await worker.on_action(reminder_id, "complete")
    if updated is None:
        return ActionResponse(applied=False)
    return ActionResponse(applied=True, reminder=reminder_to_record(updated))
