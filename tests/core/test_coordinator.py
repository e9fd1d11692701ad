# tests/core/test_coordinator.py

from unittest.mock import MagicMock

import pytest

from lessondeck.core.exceptions import GenerationRequestError
from lessondeck.core.pipeline.coordinator import PipelineCoordinator, validate_request
from lessondeck.core.pipeline.generation import SlideGenerationPipeline
from lessondeck.core.pipeline.thumbnails import ThumbnailRenderingStage
from lessondeck.core.rendering.client import RenderOptions
from lessondeck.core.sessions.registry import GenerationSessionRegistry
from lessondeck.models.schema import GenerationRequest, SlideDescription
from lessondeck.models.types import GenerationApproach, ProgressStage, SlideStatus
from tests._helpers.fakes import FakeContentClient, FakeRenderingClient, drain

pytestmark = pytest.mark.asyncio

DINO_PLAN = "### Slide 1: Intro\nMeet the dinosaurs\n### Slide 2: Details\nBig and small"


def make_coordinator(registry, content=None, rendering=None) -> PipelineCoordinator:
    return PipelineCoordinator(
        registry=registry,
        pipeline=SlideGenerationPipeline(content or FakeContentClient()),
        thumbnails=ThumbnailRenderingStage(rendering or FakeRenderingClient(), RenderOptions()),
        default_topic="general topic",
        default_age="8-9",
    )


def descriptions(n: int):
    return [SlideDescription(title=f"T{i}", description=f"D{i}") for i in range(1, n + 1)]


async def test_dinosaur_plan_yields_two_completed_slides():
    registry = GenerationSessionRegistry()
    stream = registry.register("dino")
    coordinator = make_coordinator(registry)

    result = await coordinator.run(
        GenerationRequest(plan_text=DINO_PLAN, topic="Dinosaurs", age="6-8", session_id="dino")
    )

    assert result.success
    assert [s.slide_number for s in result.slides] == [1, 2]
    assert all(s.status is SlideStatus.COMPLETED for s in result.slides)
    assert result.stats.approach is GenerationApproach.PLAN_DRIVEN
    assert result.stats.total_requested == 2
    assert result.stats.total_completed == 2
    assert result.lesson["description"] == "Lesson about Dinosaurs"
    assert result.lesson["ageGroup"] == "6-8"
    assert result.lesson["slides"][0]["thumbnail"].startswith("data:image/png;base64,")

    events = await drain(stream)
    types = [e["type"] for e in events]
    assert types[0] == "connected"
    assert types[-1] == "completed"
    completed_counts = [e["data"]["completed"] for e in events if e["type"] == "progress"]
    assert completed_counts == sorted(completed_counts)
    assert events[-1]["data"]["success"] is True
    registry.close_all()


@pytest.mark.parametrize(
    "request_kwargs",
    [
        {},
        {"plan_text": "  ", "slide_descriptions": []},
        {"plan_text": DINO_PLAN, "slide_descriptions": descriptions(1)},
        {"slide_descriptions": [SlideDescription(title=" ", description="")]},
    ],
)
async def test_invalid_requests_fail_before_any_session_interaction(request_kwargs):
    registry = MagicMock(spec=GenerationSessionRegistry)
    content = FakeContentClient()
    coordinator = make_coordinator(registry, content=content)

    with pytest.raises(GenerationRequestError):
        await coordinator.run(GenerationRequest(session_id="abc", **request_kwargs))

    assert content.calls == []
    registry.publish_progress.assert_not_called()
    registry.publish_completion.assert_not_called()


async def test_validate_request_accepts_exactly_one_input():
    validate_request(GenerationRequest(plan_text=DINO_PLAN))
    validate_request(GenerationRequest(slide_descriptions=descriptions(2)))


async def test_render_failure_for_one_slide_keeps_all_slides_completed():
    registry = MagicMock(spec=GenerationSessionRegistry)
    coordinator = make_coordinator(registry, rendering=FakeRenderingClient(fail_on=[2]))

    result = await coordinator.run(GenerationRequest(slide_descriptions=descriptions(3)))

    assert [s.status for s in result.slides] == [SlideStatus.COMPLETED] * 3
    assert not result.thumbnails[1].failed
    assert result.thumbnails[2].failed
    assert not result.thumbnails[3].failed
    assert result.stats.thumbnails_rendered == 2
    assert result.stats.thumbnails_failed == 1
    lesson_slides = result.lesson["slides"]
    assert lesson_slides[1]["thumbnail"] is None
    assert lesson_slides[1]["thumbnailFailed"] is True
    assert lesson_slides[1]["markup"]


async def test_progress_is_published_per_slide_and_per_thumbnail():
    registry = MagicMock(spec=GenerationSessionRegistry)
    registry.publish_progress.return_value = True
    coordinator = make_coordinator(registry)

    await coordinator.run(GenerationRequest(slide_descriptions=descriptions(2), session_id="s1"))

    payloads = [c.args[1] for c in registry.publish_progress.call_args_list]
    assert [p.stage for p in payloads] == [
        ProgressStage.GENERATION,
        ProgressStage.GENERATION,
        ProgressStage.THUMBNAILS,
        ProgressStage.THUMBNAILS,
    ]
    assert [p.completed for p in payloads] == [1, 2, 2, 2]
    assert sorted(p.thumbnails_completed for p in payloads[2:]) == [1, 2]
    registry.publish_completion.assert_called_once()
    assert registry.publish_completion.call_args.args[0] == "s1"


async def test_missing_session_does_not_affect_result():
    registry = GenerationSessionRegistry()
    coordinator = make_coordinator(registry)

    result = await coordinator.run(
        GenerationRequest(slide_descriptions=descriptions(2), session_id="nobody-listening")
    )

    assert result.success
    assert len(result.slides) == 2


async def test_generation_item_failure_is_isolated():
    registry = MagicMock(spec=GenerationSessionRegistry)
    coordinator = make_coordinator(registry, content=FakeContentClient(fail_on=[1]))

    result = await coordinator.run(GenerationRequest(slide_descriptions=descriptions(3)))

    assert result.success
    assert [s.status for s in result.slides] == [
        SlideStatus.ERROR,
        SlideStatus.COMPLETED,
        SlideStatus.COMPLETED,
    ]
    assert result.stats.total_failed == 1
    assert sorted(result.thumbnails) == [2, 3]


async def test_infrastructure_fault_returns_failed_result_and_error_event():
    registry = GenerationSessionRegistry()
    stream = registry.register("s2")
    coordinator = make_coordinator(registry, content=FakeContentClient(unavailable_on=[2]))

    result = await coordinator.run(
        GenerationRequest(slide_descriptions=descriptions(3), session_id="s2")
    )

    assert result.success is False
    assert "content generation unavailable" in result.error
    assert [s.status for s in result.slides] == [
        SlideStatus.COMPLETED,
        SlideStatus.ERROR,
        SlideStatus.ERROR,
    ]
    assert len(result.slides) == 3

    events = await drain(stream)
    error_events = [e for e in events if e["type"] == "progress" and e["data"]["error"]]
    assert len(error_events) == 1
    assert [s["status"] for s in error_events[0]["data"]["progress"]] == [
        "completed",
        "error",
        "error",
    ]
    assert events[-1]["type"] == "completed"
    assert events[-1]["data"]["success"] is False
    registry.close_all()
