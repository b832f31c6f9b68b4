"""
tests.conftest

Shared fixtures for API and service tests.

Responsibilities:
- Build test settings backed by a temporary SQLite database.
- Run the app lifespan explicitly and expose an httpx client over ASGITransport.
- Mint bearer tokens and seed role grants.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import httpx
import jwt
import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portal_gateway.api.app import create_app
from portal_gateway.auth.roles import Role
from portal_gateway.db.init_db import init_db
from portal_gateway.db.repositories.user_roles import UserRoleRepo
from portal_gateway.db.session import create_engine, create_sessionmaker
from portal_gateway.settings import Settings

JWT_SECRET = "test-secret"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    # The sweep is off by default in tests; registry tests enable it explicitly.
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'portal_gateway.db'}",
        jwt_secret=JWT_SECRET,
        registry_stale_after_seconds=0,
    )


@pytest_asyncio.fixture
async def sessions(settings: Settings) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_engine(settings)
    await init_db(engine)
    try:
        yield create_sessionmaker(engine)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings)
    # httpx ASGITransport does not manage lifespan automatically; do it explicitly.
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def issue_token(settings: Settings) -> Callable[..., str]:
    def _issue(subject: str, *, ttl: timedelta = timedelta(minutes=5), **claims: Any) -> str:
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": subject,
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        payload.update(claims)
        return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)

    return _issue


@pytest.fixture
def grant(app: FastAPI) -> Callable[..., Awaitable[None]]:
    async def _grant(user_id: str, *roles: Role) -> None:
        async with app.state.sessionmaker() as session:
            repo = UserRoleRepo(session)
            for role in roles:
                await repo.add(user_id=user_id, role=role)
            await session.commit()

    return _grant
