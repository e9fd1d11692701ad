# tests/core/test_generation_pipeline.py

import pytest

from lessondeck.core.exceptions import CollaboratorUnavailableError, GenerationRequestError
from lessondeck.core.pipeline.generation import (
    SlideGenerationPipeline,
    build_context,
    build_progress,
    complete_slide,
    fail_slide,
    mark_unfinished_as_error,
    pending_slides,
    select_approach,
)
from lessondeck.models.context import SlideOutline
from lessondeck.models.schema import GeneratedSlide, GenerationRequest, SlideDescription
from lessondeck.models.types import GenerationApproach, SlideStatus
from tests._helpers.fakes import FakeContentClient


def descriptions_request(n: int, **kwargs) -> GenerationRequest:
    return GenerationRequest(
        slide_descriptions=[
            SlideDescription(title=f"Topic {i}", description=f"Body {i}")
            for i in range(1, n + 1)
        ],
        **kwargs,
    )


# --- pure helpers ---


def test_select_approach_prefers_plan():
    req = GenerationRequest(
        plan_text="### Slide 1: A",
        slide_descriptions=[SlideDescription(title="x")],
    )
    assert select_approach(req) is GenerationApproach.PLAN_DRIVEN
    assert select_approach(descriptions_request(1)) is GenerationApproach.DESCRIPTION_DRIVEN


def test_select_approach_rejects_empty_input():
    with pytest.raises(GenerationRequestError):
        select_approach(GenerationRequest(plan_text="   ", slide_descriptions=[]))


def test_build_context_applies_defaults():
    ctx = build_context(descriptions_request(2), "general topic", "8-9")
    assert ctx.topic == "general topic"
    assert ctx.age == "8-9"
    assert ctx.total == 2
    assert [s.status for s in ctx.slides] == [SlideStatus.PENDING] * 2


def test_slide_transitions_return_new_objects():
    [slide] = pending_slides([SlideOutline(title="T", prompt="p")])

    done = complete_slide(slide, GeneratedSlide(title="Nice", html="<p>x</p>"))
    failed = fail_slide(slide, "boom")

    assert slide.status is SlideStatus.PENDING
    assert (done.status, done.progress_percent, done.markup) == (SlideStatus.COMPLETED, 100, "<p>x</p>")
    assert (failed.status, failed.markup, failed.error) == (SlideStatus.ERROR, None, "boom")
    assert failed.title == "T"


def test_mark_unfinished_as_error_keeps_terminal_slides():
    slides = pending_slides([SlideOutline(title=f"S{i}", prompt="p") for i in range(3)])
    slides[0] = complete_slide(slides[0], GeneratedSlide(title="S0", html="<p/>"))

    marked = mark_unfinished_as_error(slides, "down")
    assert [s.status for s in marked] == [SlideStatus.COMPLETED, SlideStatus.ERROR, SlideStatus.ERROR]
    assert build_progress(marked, 3).completed == 3


# --- pipeline ---


@pytest.mark.asyncio
async def test_run_generates_every_slide_in_order():
    client = FakeContentClient()
    ctx = build_context(descriptions_request(3, topic="Space", age="6-7"), "t", "a")
    snapshots = []

    ctx = await SlideGenerationPipeline(client).run(ctx, snapshots.append)

    assert [s.slide_number for s in ctx.slides] == [1, 2, 3]
    assert all(s.status is SlideStatus.COMPLETED for s in ctx.slides)
    assert [c.slide_number for c in client.calls] == [1, 2, 3]
    assert client.calls[0].content == "Topic 1\n\nBody 1"
    assert client.calls[0].topic == "Space"
    assert client.calls[0].total_slides == 3


@pytest.mark.asyncio
async def test_progress_snapshots_are_cumulative_and_non_decreasing():
    ctx = build_context(descriptions_request(3), "t", "a")
    snapshots = []

    await SlideGenerationPipeline(FakeContentClient(fail_on=[2])).run(ctx, snapshots.append)

    assert [p.completed for p in snapshots] == [1, 2, 3]
    assert all(len(p.progress) == 3 for p in snapshots)
    assert [s.status for s in snapshots[0].progress] == [
        SlideStatus.COMPLETED,
        SlideStatus.PENDING,
        SlideStatus.PENDING,
    ]


@pytest.mark.asyncio
async def test_one_failed_item_does_not_abort_the_batch():
    ctx = build_context(descriptions_request(3), "t", "a")

    ctx = await SlideGenerationPipeline(FakeContentClient(fail_on=[2])).run(ctx)

    assert [s.status for s in ctx.slides] == [
        SlideStatus.COMPLETED,
        SlideStatus.ERROR,
        SlideStatus.COMPLETED,
    ]
    assert ctx.slides[1].markup is None
    assert "slide 2" in ctx.slides[1].error


@pytest.mark.asyncio
async def test_unavailable_collaborator_escapes_with_partial_state():
    ctx = build_context(descriptions_request(3), "t", "a")

    with pytest.raises(CollaboratorUnavailableError):
        await SlideGenerationPipeline(FakeContentClient(unavailable_on=[2])).run(ctx)

    assert [s.status for s in ctx.slides] == [
        SlideStatus.COMPLETED,
        SlideStatus.PENDING,
        SlideStatus.PENDING,
    ]


@pytest.mark.asyncio
async def test_plan_driven_run_uses_plan_excerpts():
    client = FakeContentClient()
    req = GenerationRequest(
        plan_text="# Bugs\n### Slide 1: Ants\nAnts are strong\n### Slide 2: Bees\nBees buzz",
        lesson={"title": "My Bugs"},
    )
    ctx = build_context(req, "t", "a")

    ctx = await SlideGenerationPipeline(client).run(ctx)

    assert ctx.approach is GenerationApproach.PLAN_DRIVEN
    assert [c.content for c in client.calls] == ["Ants are strong", "Bees buzz"]
    assert client.calls[0].lesson_title == "My Bugs"
