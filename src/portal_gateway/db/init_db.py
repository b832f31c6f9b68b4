"""
portal_gateway.db.init_db

Schema and data bootstrap.

Responsibilities:
- Create tables for local development and tests (prod uses Alembic).
- Seed the first admin grant so the role administration API is reachable.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from portal_gateway.auth.roles import Role
from portal_gateway.db import models  # noqa: F401  # register tables on Base.metadata
from portal_gateway.db.base import Base
from portal_gateway.db.repositories.user_roles import UserRoleRepo


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_admin(sessions: async_sessionmaker[AsyncSession], user_id: str) -> bool:
    """
    Grant `admin` to `user_id` unless already granted. Returns True when a grant was added.
    """

    async with sessions() as session:
        repo = UserRoleRepo(session)
        if await repo.has_role(user_id, Role.admin):
            return False
        await repo.add(user_id=user_id, role=Role.admin)
        await session.commit()
        return True
