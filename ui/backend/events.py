"""Event broker for websocket and SSE streaming of store changes."""

from __future__ import annotations

import asyncio
import threading
from collections import defaultdict, deque
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

STORE_CHANNEL = "store"
HISTORY_LIMIT = 100


@dataclass(frozen=True)
class Event:
    """Event emitted to connected clients."""

    event_id: str
    channel: str
    event_type: str
    message: str
    revision: int
    timestamp: datetime

    @classmethod
    def create(
        cls,
        *,
        channel: str,
        event_type: str,
        message: str,
        revision: int = 0,
    ) -> Event:
        return cls(
            event_id=uuid4().hex,
            channel=channel,
            event_type=event_type,
            message=message,
            revision=revision,
            timestamp=datetime.now(UTC),
        )


class EventBroker:
    """In-memory broker with bounded per-channel history.

    ``publish`` may be called from worker threads; delivery to each subscriber
    queue is scheduled on the event loop that created the subscription.
    """

    def __init__(self, *, history_limit: int = HISTORY_LIMIT) -> None:
        self._history: defaultdict[str, deque[Event]] = defaultdict(
            lambda: deque(maxlen=history_limit)
        )
        self._subscribers: defaultdict[
            str, list[tuple[asyncio.AbstractEventLoop, asyncio.Queue[Event]]]
        ] = defaultdict(list)
        self._lock = threading.Lock()

    def publish(self, event: Event) -> None:
        """Store the event in history and deliver it to current subscribers."""
        with self._lock:
            self._history[event.channel].append(event)
            subscribers = list(self._subscribers[event.channel])
        for loop, queue in subscribers:
            if _running_loop() is loop:
                queue.put_nowait(event)
            elif not loop.is_closed():
                loop.call_soon_threadsafe(queue.put_nowait, event)

    def history(self, channel: str) -> list[Event]:
        with self._lock:
            return list(self._history.get(channel, ()))

    def subscribe(self, channel: str) -> asyncio.Queue[Event]:
        """Subscribe to future events; must be called from within an event loop."""
        queue: asyncio.Queue[Event] = asyncio.Queue()
        with self._lock:
            self._subscribers[channel].append((asyncio.get_running_loop(), queue))
        return queue

    def unsubscribe(self, channel: str, queue: asyncio.Queue[Event]) -> None:
        with self._lock:
            self._subscribers[channel] = [
                entry for entry in self._subscribers.get(channel, []) if entry[1] is not queue
            ]


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
