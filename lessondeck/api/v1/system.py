from fastapi import APIRouter

from lessondeck import __version__
from lessondeck.core.infra.config import settings
from lessondeck.models.schema import (
    HealthResponse,
    MetaResponse,
    SessionSettings,
    ThumbnailSettings,
)

router = APIRouter()


@router.get("/healthz", response_model=HealthResponse)
async def healthz() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get("/api/v1/meta", response_model=MetaResponse, response_model_by_alias=True)
async def meta() -> MetaResponse:
    """Service metadata and effective operational settings."""
    return MetaResponse(
        version=__version__,
        content_model=settings.CONTENT_MODEL,
        sessions=SessionSettings(
            inactivity_timeout_sec=settings.SESSION_INACTIVITY_TIMEOUT_SEC,
            completion_grace_sec=settings.SESSION_COMPLETION_GRACE_SEC,
            heartbeat_interval_sec=settings.HEARTBEAT_INTERVAL_SEC,
        ),
        thumbnails=ThumbnailSettings(
            width=settings.THUMBNAIL_WIDTH,
            height=settings.THUMBNAIL_HEIGHT,
            format=settings.THUMBNAIL_FORMAT,
            max_concurrency=settings.THUMBNAIL_MAX_CONCURRENCY,
        ),
    )
