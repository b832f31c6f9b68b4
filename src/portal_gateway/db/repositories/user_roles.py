from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal_gateway.auth.roles import Role
from portal_gateway.db.models import UserRoleGrant


class UserRoleRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_user(self, user_id: str) -> list[UserRoleGrant]:
        stmt = (
            select(UserRoleGrant)
            .where(UserRoleGrant.user_id == user_id)
            .order_by(UserRoleGrant.created_at)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def roles_for_user(self, user_id: str) -> frozenset[Role]:
        stmt = select(UserRoleGrant.role).where(UserRoleGrant.user_id == user_id)
        return frozenset((await self._session.execute(stmt)).scalars().all())

    async def has_role(self, user_id: str, role: Role) -> bool:
        stmt = select(UserRoleGrant.id).where(
            UserRoleGrant.user_id == user_id, UserRoleGrant.role == role
        )
        return (await self._session.scalar(stmt)) is not None

    async def add(self, *, user_id: str, role: Role) -> UserRoleGrant:
        existing = await self._session.scalar(
            select(UserRoleGrant).where(
                UserRoleGrant.user_id == user_id, UserRoleGrant.role == role
            )
        )
        if existing is not None:
            return existing
        grant = UserRoleGrant(user_id=user_id, role=role)
        self._session.add(grant)
        await self._session.flush()
        return grant

    async def remove(self, *, user_id: str, role: Role) -> bool:
        result = await self._session.execute(
            delete(UserRoleGrant).where(
                UserRoleGrant.user_id == user_id, UserRoleGrant.role == role
            )
        )
        return result.rowcount > 0
