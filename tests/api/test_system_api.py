# tests/api/test_system_api.py

import pytest


pytestmark = pytest.mark.asyncio


async def test_healthz(client):
    resp = await client.get("/healthz")
    assert resp.status_code == 200
    data = resp.json()
    assert data == {"status": "ok"}


async def test_meta(client):
    resp = await client.get("/api/v1/meta")
    assert resp.status_code == 200
    m = resp.json()
    assert m["service"] == "lessondeck"
    assert isinstance(m["version"], str)
    assert m["sessions"]["inactivityTimeoutSec"] == 600.0
    assert m["sessions"]["completionGraceSec"] == 1.0
    assert m["thumbnails"]["width"] == 1600
    assert m["thumbnails"]["height"] == 1200


async def test_metrics_endpoint(client):
    resp = await client.get("/metrics")
    assert resp.status_code == 200
    assert "lessondeck_generations_started_total" in resp.text


async def test_app_uses_injected_collaborators(app, registry, content_client, rendering_client):
    # registry is empty, hence falsy; it must still be the one the app serves
    assert len(registry) == 0
    assert app.state.registry is registry
    assert app.state.rendering_client is rendering_client
    coordinator = app.state.coordinator
    assert coordinator.registry is registry
    assert coordinator.pipeline.content_client is content_client
    assert coordinator.thumbnails.rendering_client is rendering_client
