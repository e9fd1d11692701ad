class LessonDeckError(Exception):
    pass


class GenerationRequestError(LessonDeckError):
    """The request cannot be processed; raised before any collaborator call."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class ContentGenerationError(LessonDeckError):
    """Content generation failed for one slide."""

    def __init__(self, message: str, slide_number: int | None = None) -> None:
        super().__init__(message)
        self.slide_number = slide_number


class CollaboratorUnavailableError(LessonDeckError):
    """An external collaborator is unreachable or not configured."""

    def __init__(self, collaborator: str, reason: str) -> None:
        super().__init__(f"{collaborator} unavailable: {reason}")
        self.collaborator = collaborator
        self.reason = reason


class RenderingError(LessonDeckError):
    """Thumbnail rendering failed for one slide."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
