"""
portal_gateway.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into a typed `Principal` (identity + stored role grants).
- Enforce minimum-role RBAC via a reusable dependency factory.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import (
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from portal_gateway.auth.identity import IdentityProvider, RoleStore
from portal_gateway.auth.models import Principal
from portal_gateway.auth.roles import DEFAULT_HIERARCHY, Role
from portal_gateway.errors import IdentityError, RoleStoreError

_bearer = HTTPBearer(auto_error=False)


def identity_from_app(request: Request) -> IdentityProvider:
    # Collaborators are created on app startup in `portal_gateway.api.app.create_app`.
    return request.app.state.identity  # type: ignore[attr-defined]


def role_store_from_app(request: Request) -> RoleStore:
    return request.app.state.role_store  # type: ignore[attr-defined]


async def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    identity: IdentityProvider = Depends(identity_from_app),
    role_store: RoleStore = Depends(role_store_from_app),
) -> Principal:
    # Authn: require a bearer token.
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    try:
        subject = await identity.resolve(creds.credentials)
    except IdentityError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=e.message) from e

    # Roles come from the role store, not from token claims.
    try:
        roles = await role_store.roles_for(subject)
    except RoleStoreError as e:
        raise HTTPException(status_code=HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message) from e
    return Principal(subject=subject, roles=roles)


def require_role(minimum: Role):
    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        have = principal.effective_role
        if have is None:
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="User has no roles assigned")
        if not DEFAULT_HIERARCHY.covers(have, minimum):
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Insufficient role")
        return principal

    return _dep


# --- Module Notes -----------------------------------------------------------
# These dependencies guard the portal's own admin endpoints; the /gateway endpoint
# renders decisions for other callers through services.auth_gateway instead.
