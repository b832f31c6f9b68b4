"""
tests.test_api_gateway

End-to-end checks of the /gateway endpoint with real JWTs and role grants.
"""

from __future__ import annotations

from datetime import timedelta

import httpx
import jwt
import pytest
from sqlalchemy import text

from portal_gateway.auth.roles import Role

CORS_HEADERS = {
    "access-control-allow-origin": "*",
    "access-control-allow-headers": "authorization, x-client-info, apikey, content-type",
}


def _assert_cors(r: httpx.Response) -> None:
    for name, value in CORS_HEADERS.items():
        assert r.headers[name] == value


@pytest.mark.asyncio
async def test_public_path_without_credentials(client: httpx.AsyncClient) -> None:
    r = await client.get("/gateway", params={"path": "/login"})

    assert r.status_code == 200
    assert r.json() == {"authorized": True, "message": "Public route", "path": "/login"}
    _assert_cors(r)


@pytest.mark.asyncio
async def test_missing_path_defaults_to_root(client: httpx.AsyncClient) -> None:
    r = await client.get("/gateway")

    assert r.status_code == 200
    assert r.json()["path"] == "/"


@pytest.mark.asyncio
async def test_protected_path_without_header(client: httpx.AsyncClient) -> None:
    r = await client.get("/gateway", params={"path": "/admin"})

    assert r.status_code == 401
    assert r.json() == {"error": "Missing or invalid Authorization header"}
    _assert_cors(r)


@pytest.mark.asyncio
async def test_expired_token(client: httpx.AsyncClient, issue_token) -> None:
    token = issue_token("user-1", ttl=timedelta(minutes=-5))

    r = await client.get(
        "/gateway", params={"path": "/admin"}, headers={"Authorization": f"Bearer {token}"}
    )

    assert r.status_code == 401
    assert r.json() == {"error": "Invalid JWT token"}


@pytest.mark.asyncio
async def test_token_signed_with_another_key(client: httpx.AsyncClient, settings) -> None:
    claims = {
        "sub": "u",
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": 1700000000,
        "exp": 4102444800,
    }
    token = jwt.encode(claims, "some-other-secret", algorithm="HS256")

    r = await client.get(
        "/gateway", params={"path": "/admin"}, headers={"Authorization": f"Bearer {token}"}
    )

    assert r.status_code == 401
    assert r.json() == {"error": "Invalid JWT token"}


@pytest.mark.asyncio
async def test_user_without_roles(client: httpx.AsyncClient, issue_token) -> None:
    token = issue_token("nobody")

    r = await client.get(
        "/gateway", params={"path": "/notices"}, headers={"Authorization": f"Bearer {token}"}
    )

    assert r.status_code == 403
    assert r.json() == {"error": "User has no roles assigned"}


@pytest.mark.asyncio
async def test_resident_on_admin_path(client: httpx.AsyncClient, issue_token, grant) -> None:
    await grant("res-1", Role.resident)

    r = await client.get(
        "/gateway",
        params={"path": "/admin/users"},
        headers={"Authorization": f"Bearer {issue_token('res-1')}"},
    )

    assert r.status_code == 403
    assert r.json() == {"error": "Insufficient permissions. Required: admin, User has: resident"}
    _assert_cors(r)


@pytest.mark.asyncio
async def test_highest_grant_authorizes(client: httpx.AsyncClient, issue_token, grant) -> None:
    await grant("mgr-1", Role.resident, Role.manager)

    r = await client.get(
        "/gateway",
        params={"path": "/residents"},
        headers={"Authorization": f"Bearer {issue_token('mgr-1')}"},
    )

    assert r.status_code == 200
    assert r.json() == {
        "authorized": True,
        "user_id": "mgr-1",
        "user_role": "manager",
        "required_role": "syndicate",
        "path": "/residents",
    }


@pytest.mark.asyncio
async def test_post_with_path_in_body(client: httpx.AsyncClient, issue_token, grant) -> None:
    await grant("adm-1", Role.admin)

    r = await client.post(
        "/gateway",
        json={"path": "/settings"},
        headers={"Authorization": f"Bearer {issue_token('adm-1')}"},
    )

    assert r.status_code == 200
    assert r.json()["required_role"] == "manager"
    assert r.json()["user_role"] == "admin"


@pytest.mark.asyncio
async def test_post_without_body_checks_root(client: httpx.AsyncClient) -> None:
    r = await client.post("/gateway")

    assert r.status_code == 200
    assert r.json()["message"] == "Public route"


@pytest.mark.asyncio
async def test_unknown_stored_role_is_internal_error(
    app, client: httpx.AsyncClient, issue_token
) -> None:
    async with app.state.sessionmaker() as session:
        await session.execute(
            text(
                "INSERT INTO user_roles (id, user_id, role, created_at) "
                "VALUES (:id, :user_id, :role, :created_at)"
            ),
            {
                "id": "00000000000000000000000000000001",
                "user_id": "legacy-1",
                "role": "super_admin",
                "created_at": "2024-01-01 00:00:00.000000",
            },
        )
        await session.commit()

    r = await client.get(
        "/gateway",
        params={"path": "/notices"},
        headers={"Authorization": f"Bearer {issue_token('legacy-1')}"},
    )

    assert r.status_code == 500
    assert r.json() == {"error": "Error fetching user roles"}


@pytest.mark.asyncio
async def test_options_preflight(client: httpx.AsyncClient) -> None:
    r = await client.options("/gateway")

    assert r.status_code == 204
    assert r.content == b""
    _assert_cors(r)
    assert "x-request-id" in r.headers


@pytest.mark.asyncio
async def test_request_id_is_propagated(client: httpx.AsyncClient) -> None:
    r = await client.get("/gateway", headers={"x-request-id": "req-123"})

    assert r.headers["x-request-id"] == "req-123"
