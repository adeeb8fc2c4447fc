"""SSE streaming helpers for Quorum.

Fans round lifecycle events out to any number of subscribers.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator
from uuid import uuid4

from quorum.lib.models import FinalizedRound, RoundEvent, Snapshot

logger = logging.getLogger(__name__)


# =============================================================================
# Event Types
# =============================================================================


class EventType:
    """SSE event type constants."""

    ROUND_PREPARED = "round_prepared"
    ROUND_FINALIZED = "round_finalized"
    HEARTBEAT = "heartbeat"


# =============================================================================
# Event Bus
# =============================================================================


class RoundEventBus:
    """
    Broadcasts round events to subscriber queues.

    Publishing never blocks: a subscriber whose queue is full loses its
    oldest pending event.
    """

    def __init__(self, max_queue_size: int = 32):
        self.max_queue_size = max_queue_size
        self._subscribers: set[asyncio.Queue[RoundEvent]] = set()
        self._sequence = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def build(self, event_type: str, data: dict[str, Any] | None = None) -> RoundEvent:
        """Build an event with the next sequence number."""
        event = RoundEvent(
            event_id=str(uuid4()),
            sequence=self._sequence,
            event_type=event_type,
            data=data or {},
        )
        self._sequence += 1
        return event

    def publish(self, event: RoundEvent) -> None:
        """Deliver an event to every subscriber."""
        for queue in list(self._subscribers):
            if queue.full():
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
                logger.debug("Dropped oldest event for slow subscriber")
            queue.put_nowait(event)

    def round_prepared(self, snapshot: Snapshot) -> RoundEvent:
        """Publish a snapshot freeze."""
        event = self.build(
            EventType.ROUND_PREPARED,
            {
                "round_key": snapshot.round_key,
                "sources": dict(snapshot.readings),
            },
        )
        self.publish(event)
        return event

    def round_finalized(self, finalized: FinalizedRound) -> RoundEvent:
        """Publish a decided outcome."""
        event = self.build(EventType.ROUND_FINALIZED, finalized.model_dump(mode="json"))
        self.publish(event)
        return event

    def subscribe(self) -> asyncio.Queue[RoundEvent]:
        """Register a new subscriber queue."""
        queue: asyncio.Queue[RoundEvent] = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[RoundEvent]) -> None:
        """Remove a subscriber queue."""
        self._subscribers.discard(queue)

    async def stream(self, heartbeat_interval: float = 15.0) -> AsyncIterator[RoundEvent]:
        """
        Iterate over events for one subscriber.

        Yields a heartbeat event whenever nothing happened for
        ``heartbeat_interval`` seconds.
        """
        queue = self.subscribe()
        try:
            while True:
                try:
                    yield await asyncio.wait_for(queue.get(), timeout=heartbeat_interval)
                except asyncio.TimeoutError:
                    yield self.build(EventType.HEARTBEAT)
        finally:
            self.unsubscribe(queue)


# =============================================================================
# SSE Formatter
# =============================================================================


def to_sse_message(event: RoundEvent) -> dict[str, Any]:
    """Shape a RoundEvent for EventSourceResponse."""
    return {
        "id": str(event.sequence),
        "event": event.event_type,
        "data": json.dumps(event.model_dump(mode="json")),
    }


# =============================================================================
# Module-level bus instance
# =============================================================================


_default_bus: RoundEventBus | None = None


def get_event_bus() -> RoundEventBus:
    """Get the default event bus instance."""
    global _default_bus
    if _default_bus is None:
        _default_bus = RoundEventBus()
    return _default_bus


def reset_event_bus() -> None:
    """Drop the default event bus (for testing)."""
    global _default_bus
    _default_bus = None
