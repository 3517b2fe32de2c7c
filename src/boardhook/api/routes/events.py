"""Server-Sent Events (SSE) endpoint."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from boardhook.api.dependencies import get_event_manager

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from boardhook.api.events import EventManager

EventManagerDep = Annotated["EventManager", Depends(get_event_manager)]

router = APIRouter(prefix="/events", tags=["events"])


@router.get("/stream")
async def event_stream(
    event_manager: EventManagerDep,
    workspace_id: str | None = Query(default=None, description="Filter by workspace ID"),
) -> StreamingResponse:
    """Subscribe to board events.

    Clients receive ``board_invalidated`` and ``issue_created`` whenever a
    webhook adds an issue to a board they display, plus a heartbeat every 30
    seconds.
    """
    em: EventManager = event_manager
    subscriber = em.subscribe(workspace_id)

    async def generate() -> AsyncGenerator[str, None]:
        try:
            while True:
                try:
                    event = await asyncio.wait_for(
                        subscriber.queue.get(),
                        timeout=em._heartbeat_interval,
                    )
                    yield event.to_sse()
                except TimeoutError:
                    yield em.create_heartbeat_event().to_sse()
        except asyncio.CancelledError:
            # Client disconnected
            pass
        finally:
            em.unsubscribe(subscriber.id)

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
