"""
portal_gateway.db.session

Async SQLAlchemy engine + session factory helpers.

Responsibilities:
- Create the async engine from settings (SQLite gets a writer busy-timeout).
- Create the async sessionmaker used by the registry, role store and admin API.
"""

from __future__ import annotations

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from portal_gateway.settings import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    connect_args: dict[str, object] = {}
    if make_url(settings.database_url).get_backend_name() == "sqlite":
        # Concurrent register/heartbeat writers wait for the file lock instead of failing.
        connect_args["timeout"] = settings.call_timeout_seconds
    return create_async_engine(
        settings.database_url,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Rows handed back by the registry must stay readable after commit.
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


# --- Module Notes -----------------------------------------------------------
# Each registry operation and role lookup opens its own short-lived session.
