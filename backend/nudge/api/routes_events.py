import asyncio
import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from ..core.transport import Broadcaster, Event, get_broadcaster

router = APIRouter(tags=["events"])

KEEPALIVE_SECONDS = 15.0


def format_sse(event: Event) -> str:
    data = json.dumps(event["payload"], default=str)
    return f"event: {event['type']}\ndata: {data}\n\n"


@router.get("/events")
async def stream_events(
    request: Request,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Server-sent events for the foreground app: triggered, snoozed, completed..."""
    queue = broadcaster.subscribe()

    async def event_stream():
        try:
            while not await request.is_disconnected():
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield format_sse(event)
        finally:
            broadcaster.unsubscribe(queue)

    return StreamingResponse(event_stream(), media_type="text/event-stream")
