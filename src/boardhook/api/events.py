"""Event manager for Server-Sent Events (SSE) and board view invalidation."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

if TYPE_CHECKING:
    from boardhook.board_store import Issue

logger = logging.getLogger("boardhook.events")


class EventType(str, Enum):
    """Types of events that can be emitted."""

    BOARD_INVALIDATED = "board_invalidated"
    ISSUE_CREATED = "issue_created"
    HEARTBEAT = "heartbeat"


@dataclass
class Event:
    """An event to be sent via SSE."""

    event_type: EventType
    data: dict[str, Any]
    workspace_id: str | None = None

    def to_sse(self) -> str:
        """Convert to SSE format."""
        return f"event: {self.event_type.value}\ndata: {json.dumps(self.data)}\n\n"


@dataclass
class Subscriber:
    """A subscriber to the event stream."""

    id: str
    queue: asyncio.Queue[Event]
    workspace_id: str | None = None  # None means subscribe to all workspaces

    @classmethod
    def create(cls, workspace_id: str | None = None) -> Subscriber:
        """Create a new subscriber."""
        return cls(id=str(uuid4()), queue=asyncio.Queue(), workspace_id=workspace_id)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


@dataclass
class EventManager:
    """Manager for SSE events.

    ``emit_sync`` may be called from worker threads; when a loop is bound,
    queue writes are scheduled onto it.
    """

    _subscribers: dict[str, Subscriber] = field(default_factory=dict)
    _heartbeat_interval: int = 30  # seconds
    _loop: asyncio.AbstractEventLoop | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None) -> None:
        """Attach the event loop that owns the subscriber queues."""
        self._loop = loop

    def subscribe(self, workspace_id: str | None = None) -> Subscriber:
        """Subscribe a client to events.

        Args:
            workspace_id: Optional workspace ID to filter events. None means all.

        Returns:
            Subscriber instance for receiving events.
        """
        subscriber = Subscriber.create(workspace_id)
        with self._lock:
            self._subscribers[subscriber.id] = subscriber
        return subscriber

    def unsubscribe(self, subscriber_id: str) -> None:
        """Unsubscribe a client from events."""
        with self._lock:
            self._subscribers.pop(subscriber_id, None)

    def _matching(self, event: Event) -> list[Subscriber]:
        with self._lock:
            subscribers = list(self._subscribers.values())
        return [
            s
            for s in subscribers
            if s.workspace_id is None or s.workspace_id == event.workspace_id
        ]

    async def emit(self, event: Event) -> None:
        """Emit an event to all matching subscribers."""
        for subscriber in self._matching(event):
            await subscriber.queue.put(event)

    def emit_sync(self, event: Event) -> None:
        """Emit an event from synchronous code, possibly on another thread."""
        loop = self._loop
        for subscriber in self._matching(event):
            if loop is not None and loop.is_running():
                loop.call_soon_threadsafe(subscriber.queue.put_nowait, event)
            else:
                subscriber.queue.put_nowait(event)

    @property
    def subscriber_count(self) -> int:
        """Get the number of active subscribers."""
        with self._lock:
            return len(self._subscribers)

    def emit_board_invalidated(self, workspace_id: str, path: str) -> None:
        """Emit a board_invalidated event."""
        event = Event(
            event_type=EventType.BOARD_INVALIDATED,
            workspace_id=workspace_id,
            data={"workspace_id": workspace_id, "path": path, "timestamp": _timestamp()},
        )
        self.emit_sync(event)

    def emit_issue_created(self, workspace_id: str, issue: Issue) -> None:
        """Emit an issue_created event."""
        event = Event(
            event_type=EventType.ISSUE_CREATED,
            workspace_id=workspace_id,
            data={
                "workspace_id": workspace_id,
                "issue_id": issue.id,
                "identifier": issue.identifier,
                "title": issue.title,
                "timestamp": _timestamp(),
            },
        )
        self.emit_sync(event)

    def create_heartbeat_event(self) -> Event:
        """Create a heartbeat event."""
        return Event(
            event_type=EventType.HEARTBEAT,
            workspace_id=None,
            data={"timestamp": _timestamp()},
        )


class EventViewInvalidator:
    """View invalidator that tells connected board clients to refetch."""

    def __init__(self, event_manager: EventManager) -> None:
        self._event_manager = event_manager

    def invalidate(self, workspace_id: str, path: str) -> None:
        logger.debug("Invalidating %s for workspace %s", path, workspace_id)
        self._event_manager.emit_board_invalidated(workspace_id, path)
