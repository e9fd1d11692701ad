from datetime import datetime, UTC
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
import base64

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from lessondeck.models.types import (
    GenerationApproach,
    ProgressStage,
    SlideStatus,
)


def utcnow() -> datetime:
    return datetime.now(UTC)


class CamelModel(BaseModel):
    """Wire models are camelCase in JSON and snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- API Models ---


class SlideDescription(CamelModel):
    """One pre-itemized slide description supplied by the caller."""

    title: str = ""
    description: str = ""

    def as_prompt(self) -> str:
        return "\n\n".join(part for part in (self.title.strip(), self.description.strip()) if part)


class GenerationRequest(CamelModel):
    """Synchronous slide generation request."""

    slide_descriptions: Optional[List[SlideDescription]] = None
    plan_text: Optional[str] = None
    topic: str = ""
    age: str = ""
    session_id: Optional[str] = None
    lesson: Dict[str, Any] = Field(default_factory=dict)


# --- Data Models ---


class SlideTask(CamelModel):
    """A single slide's generation state. Replaced, never mutated."""

    model_config = ConfigDict(frozen=True)

    slide_number: int = Field(ge=1)
    title: str
    status: SlideStatus = SlideStatus.PENDING
    progress_percent: int = Field(default=0, ge=0, le=100)
    markup: Optional[str] = None
    error: Optional[str] = None


class RenderMetadata(CamelModel):
    model_config = ConfigDict(frozen=True)

    width: int
    height: int
    format: str
    size_bytes: int


class ThumbnailTask(CamelModel):
    """Preview image for one completed slide."""

    model_config = ConfigDict(frozen=True, ser_json_bytes="base64")

    slide_number: int
    image_bytes: Optional[bytes] = None
    render_metadata: Optional[RenderMetadata] = None
    failed: bool = False
    error: Optional[str] = None

    def data_url(self) -> Optional[str]:
        if self.image_bytes is None or self.render_metadata is None:
            return None
        encoded = base64.b64encode(self.image_bytes).decode("ascii")
        return f"data:image/{self.render_metadata.format};base64,{encoded}"


class LessonSlide(SlideTask):
    """Slide as returned to the caller, with its thumbnail merged in."""

    thumbnail: Optional[str] = None
    thumbnail_failed: bool = False
    render_metadata: Optional[RenderMetadata] = None


class GenerationStats(CamelModel):
    model_config = ConfigDict(frozen=True)

    total_requested: int
    total_completed: int
    total_failed: int = 0
    thumbnails_rendered: int = 0
    thumbnails_failed: int = 0
    approach: GenerationApproach
    generation_time_ms: int = 0
    generated_at: datetime = Field(default_factory=utcnow)


class PipelineResult(CamelModel):
    """Outcome of one coordinator run. Owned by the caller once returned."""

    model_config = ConfigDict(frozen=True)

    slides: List[SlideTask]
    thumbnails: Dict[int, ThumbnailTask] = Field(default_factory=dict)
    stats: GenerationStats
    lesson: Dict[str, Any] = Field(default_factory=dict)
    success: bool = True
    error: Optional[str] = None

    def lesson_slides(self) -> List[LessonSlide]:
        merged = []
        for slide in self.slides:
            thumb = self.thumbnails.get(slide.slide_number)
            merged.append(
                LessonSlide(
                    **slide.model_dump(),
                    thumbnail=thumb.data_url() if thumb else None,
                    thumbnail_failed=bool(thumb and thumb.failed),
                    render_metadata=thumb.render_metadata if thumb else None,
                )
            )
        return merged


# --- Progress stream events ---


class ProgressPayload(CamelModel):
    """Cumulative snapshot of every slide, never a diff."""

    progress: List[SlideTask]
    completed: int
    total: int
    stage: ProgressStage = ProgressStage.GENERATION
    thumbnails_completed: Optional[int] = None
    error: Optional[str] = None


class CompletionPayload(CamelModel):
    success: bool = True
    lesson: Dict[str, Any]
    statistics: GenerationStats
    final_progress: List[SlideTask]


class ConnectedEvent(CamelModel):
    type: Literal["connected"] = "connected"
    session_id: str
    timestamp: datetime = Field(default_factory=utcnow)


class ProgressEvent(CamelModel):
    type: Literal["progress"] = "progress"
    session_id: str
    data: ProgressPayload
    timestamp: datetime = Field(default_factory=utcnow)


class CompletedEvent(CamelModel):
    type: Literal["completed"] = "completed"
    session_id: str
    data: CompletionPayload
    timestamp: datetime = Field(default_factory=utcnow)


StreamEvent = Annotated[
    Union[ConnectedEvent, ProgressEvent, CompletedEvent],
    Field(discriminator="type"),
]


# --- Response Models (API) ---


class GenerationResponse(CamelModel):
    success: Literal[True] = True
    lesson: Dict[str, Any]
    generation_stats: GenerationStats
    message: str
    final_progress: List[SlideTask]


class ErrorResponse(CamelModel):
    success: Literal[False] = False
    error: str
    details: Optional[str] = None


class ServiceStatusResponse(CamelModel):
    success: bool = True
    service: str
    status: Literal["available"] = "available"
    features: List[str]


class HealthResponse(BaseModel):
    status: Literal["ok"]


class SessionSettings(CamelModel):
    inactivity_timeout_sec: float
    completion_grace_sec: float
    heartbeat_interval_sec: float


class ThumbnailSettings(CamelModel):
    width: int
    height: int
    format: str
    max_concurrency: int


class MetaResponse(CamelModel):
    service: Literal["lessondeck"] = "lessondeck"
    version: str
    content_model: str
    sessions: SessionSettings
    thumbnails: ThumbnailSettings


# --- Collaborator models ---


class SlidePromptContext(BaseModel):
    """Everything the content-generation collaborator sees for one slide."""

    slide_number: int
    total_slides: int
    title: str
    content: str
    topic: str
    age: str
    lesson_title: Optional[str] = None
    approach: GenerationApproach


class GeneratedSlide(BaseModel):
    """Structured output of the content-generation collaborator."""

    title: str = Field(description="Short, child-friendly slide title.")
    html: str = Field(
        description="Complete self-contained HTML document for the slide (inline CSS only)."
    )
