"""
tests.test_smoke

Minimal smoke tests to validate the service can boot and serve core endpoints.

Responsibilities:
- Ensure the FastAPI app starts and DB readiness probe works in test mode.
- Ensure self-registration joins the in-process registry and leaves it on shutdown.
"""

from __future__ import annotations

import httpx
import pytest

from portal_gateway import __version__
from portal_gateway.api.app import create_app
from portal_gateway.settings import Settings


@pytest.mark.asyncio
async def test_health_endpoints(client: httpx.AsyncClient) -> None:
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "version": __version__}

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json() == {"status": "ready", "stale_sweep": "off"}


@pytest.mark.asyncio
async def test_self_registration_lifecycle(settings: Settings) -> None:
    settings = settings.model_copy(
        update={"discovery_self_register": True, "public_url": "http://gw.internal:8080"}
    )
    app = create_app(settings=settings)

    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.get("/service-discovery", params={"service": "portal-gateway"})
            assert r.status_code == 200
            service = r.json()["service"]
            assert service["service_url"] == "http://gw.internal:8080"
            assert service["metadata"] == {"environment": "test", "version": __version__}

    # Shutdown deregisters; the table outlives the engine, so reopen to check.
    app = create_app(settings=settings.model_copy(update={"discovery_self_register": False}))
    async with app.router.lifespan_context(app):
        assert await app.state.registry.list() == []


@pytest.mark.asyncio
async def test_bootstrap_admin_is_granted_once(settings: Settings, issue_token) -> None:
    settings = settings.model_copy(update={"bootstrap_admin_user_id": "ops-1"})

    for _ in range(2):
        app = create_app(settings=settings)
        async with app.router.lifespan_context(app):
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
                r = await client.get(
                    "/v1/roles/ops-1",
                    headers={"Authorization": f"Bearer {issue_token('ops-1')}"},
                )
        assert r.status_code == 200
        assert r.json()["roles"] == ["admin"]


# --- Module Notes -----------------------------------------------------------
# Feature-level behavior is covered in the per-module test files.
