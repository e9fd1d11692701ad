from typing import Mapping, Optional

from fastapi import APIRouter, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Metrics definitions
GENERATIONS_STARTED = Counter(
    "lessondeck_generations_started_total", "Generation runs started"
)
GENERATIONS_COMPLETED = Counter(
    "lessondeck_generations_completed_total", "Generation runs completed"
)
GENERATION_FAILURES = Counter(
    "lessondeck_generation_failures_total", "Generation runs aborted by infrastructure faults"
)
SLIDES_GENERATED = Counter(
    "lessondeck_slides_generated_total", "Slides generated", ["status"]
)
THUMBNAILS_RENDERED = Counter(
    "lessondeck_thumbnails_rendered_total", "Thumbnail render attempts", ["outcome"]
)
PROGRESS_EVENTS = Counter(
    "lessondeck_progress_events_total", "Progress stream events", ["type", "outcome"]
)
ACTIVE_SESSIONS = Gauge(
    "lessondeck_active_sessions", "Registered progress sessions"
)
STEP_DURATION_SECONDS = Histogram(
    "lessondeck_step_duration_seconds", "Pipeline step duration seconds", ["step"]
)

# LLM-level metrics
LLM_TOKENS_TOTAL = Counter(
    "lessondeck_llm_tokens_total", "Total tokens used by LLM calls", ["op"]
)
LLM_TOKENS_PROMPT = Counter(
    "lessondeck_llm_prompt_tokens_total", "Prompt tokens used", ["op"]
)
LLM_TOKENS_COMPLETION = Counter(
    "lessondeck_llm_completion_tokens_total", "Completion tokens used", ["op"]
)
LLM_LATENCY_SECONDS = Histogram(
    "lessondeck_llm_latency_seconds", "LLM call latency seconds", ["op"]
)
LLM_ERRORS = Counter(
    "lessondeck_llm_errors_total", "Failed LLM calls", ["op", "error"]
)


LLM_SLIDE_TOKENS = Histogram(
    "lessondeck_llm_slide_tokens",
    "Tokens spent per slide, by position in the deck",
    ["op", "position"],
    buckets=(250, 500, 1000, 2000, 4000, 8000, 16000),
)

# Upper bounds of the deck-position buckets used for LLM_SLIDE_TOKENS.
SLIDE_POSITION_BOUNDS = (1, 5, 10)


metrics_router = APIRouter()


@metrics_router.get("/metrics")
async def prometheus_metrics() -> Response:
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


def observe_step(step: str, seconds: float) -> None:
    """Record how long a pipeline step took."""
    STEP_DURATION_SECONDS.labels(step=step).observe(seconds)


def observe_event(event_type: str, delivered: bool) -> None:
    PROGRESS_EVENTS.labels(
        type=event_type, outcome="delivered" if delivered else "dropped"
    ).inc()


def slide_position(slide_number: int) -> str:
    """Bucket a 1-based slide number into a bounded label: "1", "2-5", "6-10", "11+"."""
    lower = 1
    for upper in SLIDE_POSITION_BOUNDS:
        if slide_number <= upper:
            return str(upper) if lower == upper else f"{lower}-{upper}"
        lower = upper + 1
    return f"{lower}+"


def observe_llm_usage(
    op: str,
    usage: Mapping[str, int],
    latency_sec: Optional[float] = None,
    slide_number: Optional[int] = None,
) -> None:
    """Record one LLM call. ``usage`` holds prompt/completion/total token counts."""
    op = op or "unknown"
    for key, counter in (
        ("prompt", LLM_TOKENS_PROMPT),
        ("completion", LLM_TOKENS_COMPLETION),
        ("total", LLM_TOKENS_TOTAL),
    ):
        if usage.get(key):
            counter.labels(op=op).inc(usage[key])
    if latency_sec is not None:
        LLM_LATENCY_SECONDS.labels(op=op).observe(max(0.0, latency_sec))
    if slide_number is not None and usage.get("total"):
        LLM_SLIDE_TOKENS.labels(op=op, position=slide_position(slide_number)).observe(
            usage["total"]
        )
