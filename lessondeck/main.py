from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lessondeck import __version__
from lessondeck.api.v1.generation import router as generation_router
from lessondeck.api.v1.progress import router as progress_router
from lessondeck.api.v1.system import router as system_router
from lessondeck.core.exceptions import GenerationRequestError
from lessondeck.core.generation.content_writer import (
    ContentGenerationClient,
    LangChainContentClient,
)
from lessondeck.core.generation.llm import configure_llm_cache
from lessondeck.core.infra.config import settings
from lessondeck.core.infra.logging import configure_logging
from lessondeck.core.infra.metrics import metrics_router
from lessondeck.core.pipeline.coordinator import PipelineCoordinator
from lessondeck.core.pipeline.generation import SlideGenerationPipeline
from lessondeck.core.pipeline.thumbnails import ThumbnailRenderingStage
from lessondeck.core.rendering.client import (
    HttpRenderingClient,
    RenderingClient,
    RenderOptions,
)
from lessondeck.core.sessions.registry import GenerationSessionRegistry
from lessondeck.models.schema import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("Starting lessondeck %s", __version__)
    try:
        yield
    finally:
        app.state.registry.close_all()
        aclose = getattr(app.state.rendering_client, "aclose", None)
        if aclose is not None:
            await aclose()
        logger.info("lessondeck shut down")


def create_app(
    content_client: Optional[ContentGenerationClient] = None,
    rendering_client: Optional[RenderingClient] = None,
    registry: Optional[GenerationSessionRegistry] = None,
) -> FastAPI:
    """Build the app; collaborators can be injected for tests."""
    configure_logging()
    configure_llm_cache(settings.LLM_CACHE_PATH)

    app = FastAPI(title="LessonDeck API", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # An empty registry is falsy (__len__), so test for None explicitly.
    if registry is None:
        registry = GenerationSessionRegistry(
            inactivity_timeout_sec=settings.SESSION_INACTIVITY_TIMEOUT_SEC,
            completion_grace_sec=settings.SESSION_COMPLETION_GRACE_SEC,
            queue_maxsize=settings.SESSION_QUEUE_MAXSIZE,
        )
    if rendering_client is None:
        rendering_client = HttpRenderingClient(settings.RENDER_SERVICE_URL)
    if content_client is None:
        content_client = LangChainContentClient()
    app.state.registry = registry
    app.state.rendering_client = rendering_client
    app.state.coordinator = PipelineCoordinator(
        registry=registry,
        pipeline=SlideGenerationPipeline(content_client),
        thumbnails=ThumbnailRenderingStage(
            rendering_client,
            RenderOptions.from_settings(),
            max_concurrency=settings.THUMBNAIL_MAX_CONCURRENCY,
        ),
    )

    app.include_router(progress_router, prefix="/api/v1")
    app.include_router(generation_router, prefix="/api/v1")
    app.include_router(system_router)
    if settings.ENABLE_METRICS:
        app.include_router(metrics_router)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info("Rejected malformed request to %s", request.url.path)
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(
                error="Invalid request", details=str(exc.errors())
            ).model_dump(by_alias=True),
        )

    @app.exception_handler(GenerationRequestError)
    async def generation_request_handler(request: Request, exc: GenerationRequestError):
        logger.info("Rejected generation request: %s", exc)
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error=str(exc), details=exc.field).model_dump(by_alias=True),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="Internal server error", details="An unexpected error occurred"
            ).model_dump(by_alias=True),
        )

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lessondeck.main:app",
        host="0.0.0.0",
        port=8000,
        log_level=settings.LOG_LEVEL.lower(),
    )
