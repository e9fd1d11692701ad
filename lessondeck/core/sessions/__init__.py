from lessondeck.core.sessions.registry import GenerationSession, GenerationSessionRegistry
from lessondeck.core.sessions.stream import ProgressEventStream

__all__ = ["GenerationSession", "GenerationSessionRegistry", "ProgressEventStream"]
