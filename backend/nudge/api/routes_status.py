from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..core.reminder_engine import ReminderWorker, get_worker

router = APIRouter(tags=["status"])


class WorkerStatus(BaseModel):
    running: bool
    last_tick_at: Optional[datetime]
    loaded: bool
    total: int
    active: int
    pending_reprompts: int
    alarm_pending: bool


class DueItem(BaseModel):
    reminder_id: int | str
    schedule_index: Optional[int]
    time: datetime


class CheckResponse(BaseModel):
    checked_at: datetime
    due: List[DueItem]


class AlarmRequest(BaseModel):
    delay_seconds: float = Field(..., ge=0, le=7 * 24 * 3600)
    reminder_id: Optional[int | str] = None


class AlarmResponse(BaseModel):
    ok: bool
    fires_at: datetime
    reminder_id: Optional[int | str] = None


@router.get("/health")
def health():
    return {"status": "ok", "time": datetime.utcnow().isoformat() + "Z"}


@router.get("/status", response_model=WorkerStatus)
def worker_status(worker: ReminderWorker = Depends(get_worker)):
    return WorkerStatus(**worker.status())


@router.post("/worker/check", response_model=CheckResponse)
async def check_now(worker: ReminderWorker = Depends(get_worker)):
    now = datetime.now()
    signals = await worker.on_tick(now)
    return CheckResponse(
        checked_at=now,
        due=[
            DueItem(reminder_id=s.reminder_id, schedule_index=s.schedule_index, time=s.time)
            for s in signals
        ],
    )


@router.post("/worker/alarm", response_model=AlarmResponse)
async def schedule_alarm(payload: AlarmRequest, worker: ReminderWorker = Depends(get_worker)):
    worker.schedule_alarm(payload.delay_seconds)
    fires_at = datetime.now() + timedelta(seconds=payload.delay_seconds)
    return AlarmResponse(ok=True, fires_at=fires_at, reminder_id=payload.reminder_id)
