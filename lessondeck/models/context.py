from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel

from lessondeck.models.schema import GenerationRequest, SlideTask
from lessondeck.models.types import GenerationApproach


class SlideOutline(BaseModel):
    """One input item, normalized for the content-generation call."""

    title: str
    prompt: str


class PipelineContext(BaseModel):
    """Per-run state owned by a single coordinator invocation."""

    request: GenerationRequest
    approach: GenerationApproach
    topic: str
    age: str
    lesson_title: Optional[str] = None

    outlines: List[SlideOutline] = []
    slides: List[SlideTask] = []

    @property
    def session_id(self) -> Optional[str]:
        return self.request.session_id

    @property
    def total(self) -> int:
        return len(self.outlines)

    def snapshot(self) -> List[SlideTask]:
        """Copy of the current slides, ordered by slide number."""
        return sorted(self.slides, key=lambda s: s.slide_number)
