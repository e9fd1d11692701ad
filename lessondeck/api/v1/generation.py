# lessondeck/api/v1/generation.py
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from lessondeck.api.dependencies import get_coordinator
from lessondeck.core.pipeline.coordinator import PipelineCoordinator
from lessondeck.models.schema import (
    ErrorResponse,
    GenerationRequest,
    GenerationResponse,
    ServiceStatusResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE_NAME = "Sequential Slide Generation"
FEATURES = [
    "sequential-generation",
    "rate-limited",
    "stable-ordering",
    "progress-tracking",
    "thumbnail-rendering",
]


@router.post(
    "/generation/slides/sequential",
    response_model=GenerationResponse,
    response_model_by_alias=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def generate_slides(
    req: GenerationRequest,
    coordinator: PipelineCoordinator = Depends(get_coordinator),
):
    """Generates every slide, renders thumbnails and returns the assembled lesson."""
    logger.info(
        "Generation request: session=%s plan=%s descriptions=%d",
        req.session_id,
        bool(req.plan_text),
        len(req.slide_descriptions or []),
    )
    result = await coordinator.run(req)
    if not result.success:
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="Failed to generate slides", details=result.error
            ).model_dump(by_alias=True),
        )

    stats = result.stats
    return GenerationResponse(
        lesson=result.lesson,
        generation_stats=stats,
        message=(
            f"Generated {stats.total_completed} of {stats.total_requested} slides "
            f"({stats.thumbnails_rendered} thumbnails)"
        ),
        final_progress=result.slides,
    )


@router.get(
    "/generation/slides/sequential",
    response_model=ServiceStatusResponse,
    response_model_by_alias=True,
)
async def service_status() -> ServiceStatusResponse:
    """Read-only availability probe."""
    return ServiceStatusResponse(service=SERVICE_NAME, features=FEATURES)
