"""Round event SSE endpoint."""

import logging

from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse

from quorum.config import Settings, get_settings
from quorum.lib.streaming import RoundEventBus, get_event_bus, to_sse_message

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/stream")
async def stream_rounds(
    request: Request,
    bus: RoundEventBus = Depends(get_event_bus),
    settings: Settings = Depends(get_settings),
) -> EventSourceResponse:
    """
    Stream round_prepared and round_finalized events.

    Sends a heartbeat after ``stream_heartbeat_interval`` seconds of silence.
    """

    async def event_generator():
        logger.info(f"Stream client connected ({bus.subscriber_count + 1} total)")
        events = bus.stream(settings.stream_heartbeat_interval)
        try:
            async for event in events:
                if await request.is_disconnected():
                    break
                yield to_sse_message(event)
        finally:
            await events.aclose()
            logger.info("Stream client disconnected")

    return EventSourceResponse(event_generator())
