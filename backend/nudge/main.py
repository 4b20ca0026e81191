import asyncio

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api.routes_events import router as events_router
from .api.routes_notifications import router as notifications_router
from .api.routes_reminders import router as reminders_router
from .api.routes_status import router as status_router
from .config import settings
from .core.database import Base, engine
from .core.errors import PersistenceFailure
from .core.notifications import QueuedNotifier
from .core.reminder_engine import ReminderWorker, occurrence_scheduler_loop
from .core.store import SqlReminderStore
from .core.transport import Broadcaster


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
)

app.state.broadcaster = Broadcaster()
app.state.worker = ReminderWorker(
    SqlReminderStore(),
    QueuedNotifier(),
    app.state.broadcaster,
)


@app.exception_handler(PersistenceFailure)
async def persistence_failure_handler(request: Request, exc: PersistenceFailure):
    print(f"[main] {request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Reminder store unavailable, try again."})


@app.on_event("startup")
async def startup_event():
    # Create tables
    Base.metadata.create_all(bind=engine)

    worker: ReminderWorker = app.state.worker
    try:
        await worker.load()
    except PersistenceFailure as exc:
        # the scheduler retries the load on its first tick
        print(f"[main] could not load reminders: {exc}")

    # Start reminder scheduler
    app.state.scheduler_task = asyncio.create_task(
        occurrence_scheduler_loop(worker, settings.tick_interval_seconds)
    )


@app.on_event("shutdown")
async def shutdown_event():
    task = getattr(app.state, "scheduler_task", None)
    if task is not None:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
    await app.state.worker.close()


app.include_router(status_router)
app.include_router(reminders_router)
app.include_router(notifications_router)
app.include_router(events_router)
