"""
portal_gateway.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide request-scoped DB sessions.
- Encapsulate app.state access patterns (sessionmaker, registry, gateway).
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portal_gateway.services.auth_gateway import AuthGateway
from portal_gateway.services.service_registry import ServiceRegistry


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # Shared infrastructure is created in the lifespan of `portal_gateway.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


def registry_from_app(request: Request) -> ServiceRegistry:
    return request.app.state.registry  # type: ignore[attr-defined]


def gateway_from_app(request: Request) -> AuthGateway:
    return request.app.state.gateway  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commit/rollback is managed explicitly by the caller.
    async with session_factory() as session:
        yield session


# --- Module Notes -----------------------------------------------------------
# The registry and gateway are process-level components owned by the app lifespan;
# routers only ever see them through these dependencies.
