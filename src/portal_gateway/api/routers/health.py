"""
portal_gateway.api.routers.health

Liveness and readiness probes.

Responsibilities:
- `/healthz`: process is serving HTTP (reports the package version).
- `/readyz`: the shared database answers and the registry is open.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from portal_gateway import __version__
from portal_gateway.api.deps import db_session, registry_from_app
from portal_gateway.services.service_registry import ServiceRegistry

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok", "version": __version__}


@router.get("/readyz")
async def readyz(
    session: AsyncSession = Depends(db_session),
    registry: ServiceRegistry = Depends(registry_from_app),
) -> dict[str, Any]:
    # Registry rows and role grants share this database.
    await session.execute(text("SELECT 1"))
    return {"status": "ready", "stale_sweep": "running" if registry.sweeping else "off"}
