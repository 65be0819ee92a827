from __future__ import annotations

from typing import AsyncGenerator, Dict, Optional

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from concierge.stores.notifier import Notifier, get_notifier

router = APIRouter(prefix="/events", tags=["events"])


async def _event_stream(notifier: Notifier, room: Optional[str]) -> AsyncGenerator[Dict[str, str], None]:
    yield {"event": "status", "data": '{"status": "listening"}'}
    async for event in notifier.stream(room):
        yield event.to_sse()


@router.get("")
async def dashboard_events(notifier: Notifier = Depends(get_notifier)) -> EventSourceResponse:
    return EventSourceResponse(_event_stream(notifier, None), ping=15)


@router.get("/{session_id}")
async def session_events(session_id: str, notifier: Notifier = Depends(get_notifier)) -> EventSourceResponse:
    return EventSourceResponse(_event_stream(notifier, session_id), ping=15)
