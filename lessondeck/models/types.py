# lessondeck/models/types.py

from enum import Enum


class SlideStatus(str, Enum):
    """Lifecycle state of a single slide task."""

    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not SlideStatus.PENDING


class GenerationApproach(str, Enum):
    """Which input drove slide generation."""

    PLAN_DRIVEN = "plan-driven"
    DESCRIPTION_DRIVEN = "description-driven"


class ProgressStage(str, Enum):
    GENERATION = "generation"
    THUMBNAILS = "thumbnails"


class ThumbnailFormat(str, Enum):
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"
