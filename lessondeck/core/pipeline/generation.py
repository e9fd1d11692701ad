# lessondeck/core/pipeline/generation.py

import logging
from typing import Callable, List, Optional

from lessondeck.core.exceptions import CollaboratorUnavailableError, GenerationRequestError
from lessondeck.core.generation.content_writer import ContentGenerationClient
from lessondeck.core.infra.metrics import SLIDES_GENERATED
from lessondeck.core.planning.plan_parser import (
    extract_lesson_title,
    outlines_from_descriptions,
    parse_plan,
)
from lessondeck.models.context import PipelineContext, SlideOutline
from lessondeck.models.schema import (
    GeneratedSlide,
    GenerationRequest,
    ProgressPayload,
    SlidePromptContext,
    SlideTask,
)
from lessondeck.models.types import GenerationApproach, SlideStatus

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressPayload], None]


# --- Input selection ---


def select_approach(request: GenerationRequest) -> GenerationApproach:
    """A non-empty plan wins; otherwise a non-empty description list."""
    if request.plan_text and request.plan_text.strip():
        return GenerationApproach.PLAN_DRIVEN
    if request.slide_descriptions:
        return GenerationApproach.DESCRIPTION_DRIVEN
    raise GenerationRequestError(
        "Either planText or slideDescriptions must be provided", field="planText"
    )


def build_context(
    request: GenerationRequest, default_topic: str, default_age: str
) -> PipelineContext:
    approach = select_approach(request)
    if approach is GenerationApproach.PLAN_DRIVEN:
        outlines = parse_plan(request.plan_text or "")
        lesson_title = extract_lesson_title(request.plan_text or "")
    else:
        outlines = outlines_from_descriptions(request.slide_descriptions or [])
        lesson_title = None

    return PipelineContext(
        request=request,
        approach=approach,
        topic=request.topic.strip() or default_topic,
        age=request.age.strip() or default_age,
        lesson_title=request.lesson.get("title") or lesson_title,
        outlines=outlines,
        slides=pending_slides(outlines),
    )


# --- Pure slide transitions ---


def pending_slides(outlines: List[SlideOutline]) -> List[SlideTask]:
    return [
        SlideTask(slide_number=i, title=outline.title)
        for i, outline in enumerate(outlines, start=1)
    ]


def complete_slide(slide: SlideTask, generated: GeneratedSlide) -> SlideTask:
    return slide.model_copy(
        update={
            "title": generated.title.strip() or slide.title,
            "status": SlideStatus.COMPLETED,
            "progress_percent": 100,
            "markup": generated.html,
            "error": None,
        }
    )


def fail_slide(slide: SlideTask, error: str) -> SlideTask:
    return slide.model_copy(
        update={
            "title": slide.title or f"Slide {slide.slide_number}",
            "status": SlideStatus.ERROR,
            "progress_percent": 0,
            "markup": None,
            "error": error,
        }
    )


def replace_slide(slides: List[SlideTask], updated: SlideTask) -> List[SlideTask]:
    """New list with ``updated`` in place of the slide with the same number."""
    replaced = [updated if s.slide_number == updated.slide_number else s for s in slides]
    return sorted(replaced, key=lambda s: s.slide_number)


def mark_unfinished_as_error(slides: List[SlideTask], error: str) -> List[SlideTask]:
    """Terminal slides are left as they are."""
    return [s if s.status.is_terminal else fail_slide(s, error) for s in slides]


def build_progress(
    slides: List[SlideTask], total: int, error: Optional[str] = None
) -> ProgressPayload:
    ordered = sorted(slides, key=lambda s: s.slide_number)
    return ProgressPayload(
        progress=ordered,
        completed=sum(1 for s in ordered if s.status.is_terminal),
        total=total,
        error=error,
    )


# --- Pipeline ---


class SlideGenerationPipeline:
    """Produces every slide of a run, one content-generation call at a time.

    Items run strictly in input order. A failure for one item is recorded on
    that slide and the run moves on; only ``CollaboratorUnavailableError`` and
    faults outside the per-item call escape to the caller.
    """

    def __init__(self, content_client: ContentGenerationClient) -> None:
        self.content_client = content_client

    def prompt_context(self, ctx: PipelineContext, index: int) -> SlidePromptContext:
        outline = ctx.outlines[index]
        return SlidePromptContext(
            slide_number=index + 1,
            total_slides=ctx.total,
            title=outline.title,
            content=outline.prompt,
            topic=ctx.topic,
            age=ctx.age,
            lesson_title=ctx.lesson_title,
            approach=ctx.approach,
        )

    async def generate_one(self, ctx: PipelineContext, index: int) -> SlideTask:
        slide = ctx.slides[index]
        try:
            generated = await self.content_client.generate_slide(self.prompt_context(ctx, index))
        except CollaboratorUnavailableError:
            raise
        except Exception as e:
            logger.warning("Slide %d failed to generate: %s", slide.slide_number, e)
            SLIDES_GENERATED.labels(status=SlideStatus.ERROR.value).inc()
            return fail_slide(slide, str(e) or e.__class__.__name__)

        SLIDES_GENERATED.labels(status=SlideStatus.COMPLETED.value).inc()
        logger.info("Slide %d/%d generated: %s", slide.slide_number, ctx.total, generated.title)
        return complete_slide(slide, generated)

    async def run(
        self, ctx: PipelineContext, on_progress: Optional[ProgressCallback] = None
    ) -> PipelineContext:
        """Fills ``ctx.slides`` in place; each step swaps in a fresh list."""
        logger.info(
            "Generating %d slides (%s) for topic '%s', age %s",
            ctx.total,
            ctx.approach.value,
            ctx.topic,
            ctx.age,
        )
        for index in range(ctx.total):
            updated = await self.generate_one(ctx, index)
            ctx.slides = replace_slide(ctx.slides, updated)
            if on_progress is not None:
                on_progress(build_progress(ctx.slides, ctx.total))
        return ctx
