"""
tests.test_identity

JWT identity provider and SQL-backed role store.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portal_gateway.auth.identity import (
    IdentityProvider,
    JwtIdentityProvider,
    RoleStore,
    SqlRoleStore,
)
from portal_gateway.auth.jwt import JwtConfig
from portal_gateway.auth.roles import Role
from portal_gateway.db.repositories.user_roles import UserRoleRepo
from portal_gateway.errors import IdentityError, RoleStoreError
from portal_gateway.settings import Settings


@pytest.fixture
def provider(settings: Settings) -> JwtIdentityProvider:
    return JwtIdentityProvider(JwtConfig.from_settings(settings))


@pytest.mark.asyncio
async def test_valid_token_resolves_subject(provider: JwtIdentityProvider, issue_token) -> None:
    assert await provider.resolve(issue_token("user-42")) == "user-42"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "claims",
    [
        {"ttl": timedelta(seconds=-1)},
        {"aud": "someone-else"},
        {"iss": "rogue-issuer"},
        {"sub": ""},
    ],
)
async def test_invalid_tokens_raise_identity_error(
    provider: JwtIdentityProvider, issue_token, claims: dict
) -> None:
    subject = claims.pop("sub", "user-1")
    token = issue_token(subject, **claims)

    with pytest.raises(IdentityError) as exc:
        await provider.resolve(token)
    assert exc.value.message == "Invalid JWT token"


@pytest.mark.asyncio
async def test_garbage_token(provider: JwtIdentityProvider) -> None:
    with pytest.raises(IdentityError):
        await provider.resolve("not-a-jwt")


@pytest.mark.asyncio
async def test_role_store_reads_grants(sessions: async_sessionmaker[AsyncSession]) -> None:
    async with sessions() as session:
        repo = UserRoleRepo(session)
        await repo.add(user_id="u-1", role=Role.resident)
        await repo.add(user_id="u-1", role=Role.manager)
        await repo.add(user_id="u-2", role=Role.admin)
        await session.commit()

    store = SqlRoleStore(sessions)

    assert await store.roles_for("u-1") == frozenset({Role.resident, Role.manager})
    assert await store.roles_for("nobody") == frozenset()


@pytest.mark.asyncio
async def test_role_store_rejects_roles_outside_the_catalog(
    sessions: async_sessionmaker[AsyncSession],
) -> None:
    async with sessions() as session:
        await session.execute(
            text(
                "INSERT INTO user_roles (id, user_id, role, created_at) "
                "VALUES ('00000000000000000000000000000002', 'u-3', 'super_admin', "
                "'2024-01-01 00:00:00.000000')"
            )
        )
        await session.commit()

    with pytest.raises(RoleStoreError) as exc:
        await SqlRoleStore(sessions).roles_for("u-3")
    assert exc.value.message == "Error fetching user roles"


@pytest.mark.asyncio
async def test_collaborators_satisfy_protocols(
    provider: JwtIdentityProvider, sessions: async_sessionmaker[AsyncSession]
) -> None:
    assert isinstance(provider, IdentityProvider)
    assert isinstance(SqlRoleStore(sessions), RoleStore)


@pytest.mark.asyncio
async def test_leeway_tolerates_small_clock_skew(settings: Settings, issue_token) -> None:
    token = issue_token("user-7", ttl=timedelta(seconds=-5))
    skewed = JwtIdentityProvider(
        JwtConfig.from_settings(settings.model_copy(update={"jwt_leeway_seconds": 30}))
    )

    assert await skewed.resolve(token) == "user-7"
