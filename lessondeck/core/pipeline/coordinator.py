# lessondeck/core/pipeline/coordinator.py

"""Synchronous entry point for one generation run.

Generation and thumbnail rendering run back to back while progress snapshots
are pushed to the caller's session. Publishing is advisory: the returned
``PipelineResult`` never depends on whether an observer is listening.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from lessondeck.core.exceptions import GenerationRequestError
from lessondeck.core.infra.config import settings
from lessondeck.core.infra.metrics import (
    GENERATION_FAILURES,
    GENERATIONS_COMPLETED,
    GENERATIONS_STARTED,
    observe_step,
)
from lessondeck.core.pipeline.generation import (
    SlideGenerationPipeline,
    build_context,
    build_progress,
    mark_unfinished_as_error,
)
from lessondeck.core.pipeline.thumbnails import ThumbnailRenderingStage
from lessondeck.core.sessions.registry import GenerationSessionRegistry
from lessondeck.models.context import PipelineContext
from lessondeck.models.schema import (
    CompletionPayload,
    GenerationRequest,
    GenerationStats,
    PipelineResult,
    ProgressPayload,
    SlideTask,
    ThumbnailTask,
)
from lessondeck.models.types import ProgressStage, SlideStatus

logger = logging.getLogger(__name__)

DEFAULT_LESSON_TITLE = "Generated Lesson"


def validate_request(request: GenerationRequest) -> None:
    """Exactly one of planText / slideDescriptions, and no blank descriptions."""
    has_plan = bool(request.plan_text and request.plan_text.strip())
    has_descriptions = bool(request.slide_descriptions)
    if has_plan and has_descriptions:
        raise GenerationRequestError(
            "Provide either planText or slideDescriptions, not both", field="planText"
        )
    if not has_plan and not has_descriptions:
        raise GenerationRequestError(
            "Either planText or slideDescriptions must be provided", field="planText"
        )
    for i, d in enumerate(request.slide_descriptions or [], start=1):
        if not d.as_prompt():
            raise GenerationRequestError(
                f"Slide description {i} has neither a title nor a description",
                field="slideDescriptions",
            )


def build_stats(
    ctx: PipelineContext,
    slides: List[SlideTask],
    thumbnails: Dict[int, ThumbnailTask],
    started: float,
) -> GenerationStats:
    failed_thumbs = sum(1 for t in thumbnails.values() if t.failed)
    return GenerationStats(
        total_requested=ctx.total,
        total_completed=sum(1 for s in slides if s.status is SlideStatus.COMPLETED),
        total_failed=sum(1 for s in slides if s.status is SlideStatus.ERROR),
        thumbnails_rendered=len(thumbnails) - failed_thumbs,
        thumbnails_failed=failed_thumbs,
        approach=ctx.approach,
        generation_time_ms=int((time.monotonic() - started) * 1000),
    )


def build_lesson(ctx: PipelineContext, result: PipelineResult) -> Dict[str, Any]:
    """Caller-supplied lesson fields win; missing ones get defaults."""
    lesson = dict(ctx.request.lesson)
    lesson["id"] = lesson.get("id") or f"lesson_{int(time.time() * 1000)}"
    lesson["title"] = lesson.get("title") or ctx.lesson_title or DEFAULT_LESSON_TITLE
    lesson["description"] = lesson.get("description") or f"Lesson about {ctx.topic}"
    lesson["ageGroup"] = lesson.get("ageGroup") or ctx.age
    lesson["slides"] = [
        s.model_dump(mode="json", by_alias=True) for s in result.lesson_slides()
    ]
    return lesson


class PipelineCoordinator:
    def __init__(
        self,
        registry: GenerationSessionRegistry,
        pipeline: SlideGenerationPipeline,
        thumbnails: ThumbnailRenderingStage,
        default_topic: str = settings.DEFAULT_TOPIC,
        default_age: str = settings.DEFAULT_AGE_GROUP,
    ) -> None:
        self.registry = registry
        self.pipeline = pipeline
        self.thumbnails = thumbnails
        self.default_topic = default_topic
        self.default_age = default_age

    def _publish(self, session_id: Optional[str], payload: ProgressPayload) -> None:
        if session_id and not self.registry.publish_progress(session_id, payload):
            logger.debug("Progress for session %s not delivered", session_id)

    async def run(self, request: GenerationRequest) -> PipelineResult:
        """Raises ``GenerationRequestError`` for invalid input; never for run failures."""
        validate_request(request)
        ctx = build_context(request, self.default_topic, self.default_age)
        session_id = ctx.session_id

        GENERATIONS_STARTED.inc()
        started = time.monotonic()
        thumbnails: Dict[int, ThumbnailTask] = {}
        try:
            t0 = time.monotonic()
            ctx = await self.pipeline.run(ctx, lambda p: self._publish(session_id, p))
            observe_step("generation", time.monotonic() - t0)

            slides = ctx.snapshot()
            rendered = 0

            def on_rendered(_: ThumbnailTask) -> None:
                nonlocal rendered
                rendered += 1
                payload = build_progress(slides, ctx.total)
                payload.stage = ProgressStage.THUMBNAILS
                payload.thumbnails_completed = rendered
                self._publish(session_id, payload)

            t1 = time.monotonic()
            thumbnails = await self.thumbnails.run(slides, on_rendered=on_rendered)
            observe_step("thumbnails", time.monotonic() - t1)
        except Exception as e:
            return self._fail(ctx, e, thumbnails, started)

        result = PipelineResult(
            slides=slides,
            thumbnails=thumbnails,
            stats=build_stats(ctx, slides, thumbnails, started),
        )
        result = result.model_copy(update={"lesson": build_lesson(ctx, result)})

        if session_id:
            self.registry.publish_completion(
                session_id,
                CompletionPayload(
                    lesson=result.lesson,
                    statistics=result.stats,
                    final_progress=result.slides,
                ),
            )
        GENERATIONS_COMPLETED.inc()
        logger.info(
            "Generated %d/%d slides (%d thumbnails) in %d ms",
            result.stats.total_completed,
            result.stats.total_requested,
            result.stats.thumbnails_rendered,
            result.stats.generation_time_ms,
        )
        return result

    def _fail(
        self,
        ctx: PipelineContext,
        error: Exception,
        thumbnails: Dict[int, ThumbnailTask],
        started: float,
    ) -> PipelineResult:
        logger.error("Generation run failed: %s", error, exc_info=True)
        GENERATION_FAILURES.inc()
        message = str(error) or error.__class__.__name__
        slides = mark_unfinished_as_error(ctx.snapshot(), message)
        session_id = ctx.session_id

        self._publish(session_id, build_progress(slides, ctx.total, error=message))

        result = PipelineResult(
            slides=slides,
            thumbnails=thumbnails,
            stats=build_stats(ctx, slides, thumbnails, started),
            success=False,
            error=message,
        )
        if session_id:
            # Terminal signal so the observer's stream closes after the grace delay.
            self.registry.publish_completion(
                session_id,
                CompletionPayload(
                    success=False,
                    lesson={},
                    statistics=result.stats,
                    final_progress=slides,
                ),
            )
        return result
