from fastapi import Request

from lessondeck.core.pipeline.coordinator import PipelineCoordinator
from lessondeck.core.sessions.registry import GenerationSessionRegistry


def get_registry(request: Request) -> GenerationSessionRegistry:
    """Process-wide session registry built by ``create_app``."""
    return request.app.state.registry


def get_coordinator(request: Request) -> PipelineCoordinator:
    return request.app.state.coordinator
