# lessondeck/api/v1/progress.py
import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from lessondeck.api.dependencies import get_registry
from lessondeck.core.infra.config import settings
from lessondeck.core.sessions.registry import GenerationSessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("/generation/slides/progress")
async def subscribe_progress(
    session_id: str = Query(..., alias="sessionId", min_length=1),
    registry: GenerationSessionRegistry = Depends(get_registry),
) -> StreamingResponse:
    """Registers the session and streams its events as SSE until teardown."""
    stream = registry.register(session_id)

    async def event_generator():
        try:
            async for frame in stream.frames(settings.HEARTBEAT_INTERVAL_SEC):
                yield frame.encode("utf-8")
        finally:
            # Client went away or the registry closed the stream.
            if registry.disconnect(session_id, stream):
                logger.info("Observer for session %s disconnected", session_id)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
