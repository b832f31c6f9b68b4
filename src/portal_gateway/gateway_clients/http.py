"""
portal_gateway.gateway_clients.http

HTTP client boundary for the `/gateway` authorization endpoint.

Responsibilities:
- Ask the gateway whether the caller's bearer token may reach a portal path.
- Turn 200/401/403/500 bodies into an `AccessCheck`; transport failures and
  timeouts are reported in the result, never raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from portal_gateway.auth.roles import Role
from portal_gateway.observability.logging import get_logger

log = get_logger(__name__)

GATEWAY_UNAVAILABLE = "Gateway unavailable"


@dataclass(frozen=True, slots=True)
class AccessCheck:
    authorized: bool
    status_code: int | None = None
    user_id: str | None = None
    user_role: Role | None = None
    required_role: Role | None = None
    error: str | None = None

    @property
    def public(self) -> bool:
        return self.authorized and self.required_role is None


def _role(value: Any) -> Role | None:
    try:
        return Role(value) if value else None
    except ValueError:
        # A newer gateway may know roles this client does not.
        return None


class GatewayHttpClient:
    """
    Wraps a caller-owned `httpx.AsyncClient` (base URL and timeouts live there).
    """

    def __init__(self, *, http: httpx.AsyncClient, path: str = "/gateway") -> None:
        self._http = http
        self._path = path

    async def validate_access(self, path: str, *, token: str | None = None) -> AccessCheck:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            r = await self._http.post(self._path, json={"path": path}, headers=headers)
        except httpx.HTTPError as e:
            log.warning("gateway_client.unavailable", path=path, error=repr(e))
            return AccessCheck(authorized=False, error=GATEWAY_UNAVAILABLE)

        try:
            body = r.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if r.status_code == 200 and body.get("authorized") is True:
            return AccessCheck(
                authorized=True,
                status_code=200,
                user_id=body.get("user_id"),
                user_role=_role(body.get("user_role")),
                required_role=_role(body.get("required_role")),
            )

        error = body.get("error") or r.text or f"HTTP {r.status_code}"
        if r.status_code >= 500:
            log.warning("gateway_client.error", path=path, status_code=r.status_code, error=error)
        return AccessCheck(authorized=False, status_code=r.status_code, error=str(error))


# --- Module Notes -----------------------------------------------------------
# Without a token the request goes out bare; the gateway still answers public paths.
