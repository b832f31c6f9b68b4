"""
portal_gateway.auth.identity

Identity and role-store collaborators consulted by the gateway.

Responsibilities:
- Exchange a bearer token for a subject (`IdentityProvider`).
- Resolve a subject's granted roles (`RoleStore`).
- Normalize collaborator failures into `IdentityError` / `RoleStoreError`.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portal_gateway.auth.jwt import JwtConfig, JwtValidationError, verify_subject
from portal_gateway.auth.roles import Role
from portal_gateway.db.repositories.user_roles import UserRoleRepo
from portal_gateway.errors import IdentityError, RoleStoreError, UnknownRoleError


@runtime_checkable
class IdentityProvider(Protocol):
    async def resolve(self, token: str) -> str: ...


@runtime_checkable
class RoleStore(Protocol):
    async def roles_for(self, subject: str) -> frozenset[Role]: ...


class JwtIdentityProvider:
    """
    Validates HS256 bearer JWTs issued by the identity service and returns `sub`.
    """

    def __init__(self, cfg: JwtConfig) -> None:
        self._cfg = cfg

    async def resolve(self, token: str) -> str:
        try:
            return verify_subject(cfg=self._cfg, token=token)
        except JwtValidationError as e:
            raise IdentityError("Invalid JWT token", details={"reason": str(e)}) from e


class SqlRoleStore:
    """
    Reads role grants from the `user_roles` table.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def roles_for(self, subject: str) -> frozenset[Role]:
        try:
            async with self._sessions() as session:
                return await UserRoleRepo(session).roles_for_user(subject)
        except LookupError as e:
            # SQLAlchemy's Enum type raises LookupError for a stored role outside the catalog.
            raise RoleStoreError(
                "Error fetching user roles",
                details={"error": UnknownRoleError(str(e)).message},
            ) from e
        except SQLAlchemyError as e:
            raise RoleStoreError("Error fetching user roles", details={"error": str(e)}) from e


# --- Module Notes -----------------------------------------------------------
# Both collaborators are replaceable (e.g. a remote identity service); the gateway only
# depends on the protocols above.
