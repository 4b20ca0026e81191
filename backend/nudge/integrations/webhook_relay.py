from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx

from ..config import settings

# Use config-driven API base, defaulting to local dev
API_BASE = settings.api_base_url or "http://localhost:8000"

NOTIFICATION_FETCH_LIMIT = 20
NOTIFICATION_CONSUMER_ID = "webhook-relay"


async def fetch_pending_notifications(
    client: httpx.AsyncClient,
    api_base: str = API_BASE,
) -> list[dict]:
    url = f"{api_base}/notifications/pending"
    params = {
        "limit": NOTIFICATION_FETCH_LIMIT,
        "consumer_id": NOTIFICATION_CONSUMER_ID,
        "lock_seconds": 60,
    }
    try:
        resp = await client.get(url, params=params)
    except httpx.RequestError as exc:
        print(f"[webhook_relay] fetch notifications request error ({type(exc).__name__}): {exc!r}")
        raise

    if resp.status_code >= 400:
        detail = ""
        try:
            body = resp.json()
            detail = body.get("detail", "")
        except Exception:
            body = resp.text[:500]
        print(
            f"[webhook_relay] fetch notifications HTTP {resp.status_code}; "
            f"detail={detail or 'n/a'}; body={body}"
        )
        resp.raise_for_status()

    return resp.json()


async def ack_notification(client: httpx.AsyncClient, event_id: int, api_base: str = API_BASE) -> None:
    try:
        await client.post(f"{api_base}/notifications/{event_id}/ack")
    except httpx.HTTPError as exc:
        print(f"[webhook_relay] failed to ack notification {event_id}: {exc}")


async def fail_notification(
    client: httpx.AsyncClient,
    event_id: int,
    error: str,
    api_base: str = API_BASE,
) -> None:
    try:
        await client.post(
            f"{api_base}/notifications/{event_id}/fail",
            json={"error_message": error},
        )
    except httpx.HTTPError as exc:
        print(f"[webhook_relay] failed to record failure for {event_id}: {exc}")


def build_push_payload(notif: dict) -> Dict[str, Any]:
    payload = notif.get("payload") or {}
    channel = notif.get("channel") or payload.get("channel")
    if channel != "reminder":
        raise ValueError(f"unsupported channel {channel}")

    reminder_id = payload.get("reminder_id")
    if reminder_id is None:
        raise ValueError("missing reminder_id")

    return {
        "event_id": notif.get("id"),
        "tag": payload.get("tag") or f"reminder-{reminder_id}",
        "reminder_id": reminder_id,
        "title": payload.get("title") or "⏰ Reminder",
        "body": payload.get("body") or "You have a pending reminder!",
        "actions": payload.get("actions") or [],
    }


async def deliver_notification(client: httpx.AsyncClient, webhook_url: str, notif: dict) -> None:
    resp = await client.post(webhook_url, json=build_push_payload(notif))
    resp.raise_for_status()


async def process_pending_notifications(
    client: httpx.AsyncClient,
    webhook_url: str,
    api_base: str = API_BASE,
) -> int:
    """Deliver one batch; returns how many notifications were pushed."""
    try:
        notifications = await fetch_pending_notifications(client, api_base)
    except (httpx.HTTPError, ValueError):
        # fetch already logged details
        return 0

    delivered = 0
    for notif in notifications:
        event_id = notif.get("id")
        if not event_id:
            continue
        try:
            await deliver_notification(client, webhook_url, notif)
        except (httpx.HTTPError, ValueError) as exc:
            await fail_notification(client, event_id, str(exc)[:500], api_base)
        else:
            await ack_notification(client, event_id, api_base)
            delivered += 1
        await asyncio.sleep(0)  # yield control
    return delivered


async def relay_loop(
    webhook_url: Optional[str] = None,
    interval_seconds: float = settings.relay_poll_interval_seconds,
) -> None:
    webhook_url = webhook_url or settings.push_webhook_url
    if not webhook_url:
        raise RuntimeError("PUSH_WEBHOOK_URL not set in .env")

    def build_client() -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(connect=10.0, read=30.0, write=10.0, pool=10.0),
            transport=httpx.AsyncHTTPTransport(retries=3),
        )

    print(f"[webhook_relay] API base: {API_BASE}")
    while True:
        try:
            async with build_client() as client:
                while True:
                    await process_pending_notifications(client, webhook_url)
                    await asyncio.sleep(interval_seconds)
        except httpx.HTTPError as exc:
            print(f"[webhook_relay] client loop error ({type(exc).__name__}): {exc}")

        # Recreate client after transient failure
        await asyncio.sleep(2)


async def main() -> None:
    print("Starting Nudge webhook relay...")
    await relay_loop()


if __name__ == "__main__":
    asyncio.run(main())
