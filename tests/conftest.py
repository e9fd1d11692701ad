"""Global test configuration and fixtures."""

import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment before the settings singleton is created
os.environ["OPENAI_API_KEY"] = "test-openai-key"
os.environ["LOG_TO_FILE"] = "false"
os.environ["LLM_CACHE_PATH"] = ""

from lessondeck.core.sessions.registry import GenerationSessionRegistry
from lessondeck.main import create_app
from tests._helpers.fakes import FakeContentClient, FakeRenderingClient


@pytest.fixture
def content_client() -> FakeContentClient:
    return FakeContentClient()


@pytest.fixture
def rendering_client() -> FakeRenderingClient:
    return FakeRenderingClient()


@pytest.fixture
def registry() -> GenerationSessionRegistry:
    # Short grace so completed streams end quickly in tests
    return GenerationSessionRegistry(
        inactivity_timeout_sec=5.0, completion_grace_sec=0.05, queue_maxsize=64
    )


@pytest.fixture
def app(content_client, rendering_client, registry):
    return create_app(
        content_client=content_client,
        rendering_client=rendering_client,
        registry=registry,
    )


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
