"""
portal_gateway.services.auth_gateway

Route-level authorization decisions for the portal.

Responsibilities:
- Resolve a requested path to "public" or a minimum role (RoutePolicy).
- Validate the caller's bearer credential and fetch its role grants.
- Compare the caller's effective role with the requirement (RoleHierarchy).
- Render every outcome as an `AuthDecision`; nothing is raised for "not authorized".
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass
from typing import Any

from portal_gateway.auth.identity import IdentityProvider, RoleStore
from portal_gateway.auth.policy import RoutePolicy
from portal_gateway.auth.roles import DEFAULT_HIERARCHY, Role, RoleHierarchy
from portal_gateway.errors import IdentityError, RoleStoreError, UnknownRoleError
from portal_gateway.observability.logging import get_logger

log = get_logger(__name__)

MISSING_CREDENTIAL = "Missing or invalid Authorization header"
INVALID_TOKEN = "Invalid JWT token"
NO_ROLES = "User has no roles assigned"
ROLES_UNAVAILABLE = "Error fetching user roles"
INTERNAL_ERROR = "Internal server error"


class Outcome(enum.StrEnum):
    authorized = "authorized"
    unauthenticated = "unauthenticated"
    forbidden = "forbidden"
    error = "error"


_STATUS_CODES = {
    Outcome.authorized: 200,
    Outcome.unauthenticated: 401,
    Outcome.forbidden: 403,
    Outcome.error: 500,
}


@dataclass(frozen=True, slots=True)
class AuthDecision:
    """
    Result of one authorization check. Built per request; never cached.
    """

    outcome: Outcome
    path: str
    required_role: Role | None = None
    principal_role: Role | None = None
    user_id: str | None = None
    reason: str | None = None

    @property
    def authorized(self) -> bool:
        return self.outcome is Outcome.authorized

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.outcome]

    def to_payload(self) -> dict[str, Any]:
        if not self.authorized:
            return {"error": self.reason or INTERNAL_ERROR}
        if self.required_role is None:
            return {"authorized": True, "message": "Public route", "path": self.path}
        return {
            "authorized": True,
            "user_id": self.user_id,
            "user_role": self.principal_role.value if self.principal_role else None,
            "required_role": self.required_role.value,
            "path": self.path,
        }


def parse_bearer(authorization: str | None) -> str | None:
    """
    Return the token of a well-formed `Bearer <token>` header, else None.
    """

    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer ") :].strip()
    if not token or any(ch.isspace() for ch in token):
        return None
    return token


class AuthGateway:
    def __init__(
        self,
        *,
        policy: RoutePolicy,
        identity: IdentityProvider,
        role_store: RoleStore,
        hierarchy: RoleHierarchy = DEFAULT_HIERARCHY,
        timeout: float = 5.0,
    ) -> None:
        self._policy = policy
        self._identity = identity
        self._role_store = role_store
        self._hierarchy = hierarchy
        self._timeout = timeout

    @property
    def policy(self) -> RoutePolicy:
        return self._policy

    async def authorize(self, path: str, authorization: str | None) -> AuthDecision:
        required = self._policy.required_role(path)
        if required is None:
            # Public routes never look at the credential.
            log.info("gateway.public", path=path)
            return AuthDecision(outcome=Outcome.authorized, path=path)

        token = parse_bearer(authorization)
        if token is None:
            log.info("gateway.unauthenticated", path=path, reason="missing_credential")
            return self._deny(Outcome.unauthenticated, path, required, MISSING_CREDENTIAL)

        try:
            subject = await asyncio.wait_for(self._identity.resolve(token), self._timeout)
        except IdentityError as e:
            log.info("gateway.unauthenticated", path=path, reason=e.message, details=e.details)
            return self._deny(Outcome.unauthenticated, path, required, INVALID_TOKEN)
        except Exception:
            # Timeouts and collaborator crashes surface as a generic 500.
            log.exception("gateway.identity_failed", path=path)
            return self._deny(Outcome.error, path, required, INTERNAL_ERROR)

        try:
            roles = await asyncio.wait_for(self._role_store.roles_for(subject), self._timeout)
            have = self._hierarchy.highest(roles)
        except (RoleStoreError, UnknownRoleError) as e:
            log.error("gateway.roles_failed", path=path, user_id=subject, details=e.details)
            return self._deny(Outcome.error, path, required, ROLES_UNAVAILABLE, user_id=subject)
        except Exception:
            log.exception("gateway.roles_failed", path=path, user_id=subject)
            return self._deny(Outcome.error, path, required, ROLES_UNAVAILABLE, user_id=subject)

        if have is None:
            log.info("gateway.forbidden", path=path, user_id=subject, reason="no_roles")
            return self._deny(Outcome.forbidden, path, required, NO_ROLES, user_id=subject)

        if not self._hierarchy.covers(have, required):
            log.info(
                "gateway.forbidden",
                path=path,
                user_id=subject,
                role=have.value,
                required_role=required.value,
            )
            return AuthDecision(
                outcome=Outcome.forbidden,
                path=path,
                required_role=required,
                principal_role=have,
                user_id=subject,
                reason=(
                    f"Insufficient permissions. Required: {required.value}, "
                    f"User has: {have.value}"
                ),
            )

        log.info(
            "gateway.authorized",
            path=path,
            user_id=subject,
            role=have.value,
            required_role=required.value,
        )
        return AuthDecision(
            outcome=Outcome.authorized,
            path=path,
            required_role=required,
            principal_role=have,
            user_id=subject,
        )

    @staticmethod
    def _deny(
        outcome: Outcome,
        path: str,
        required: Role,
        reason: str,
        *,
        user_id: str | None = None,
    ) -> AuthDecision:
        return AuthDecision(
            outcome=outcome,
            path=path,
            required_role=required,
            user_id=user_id,
            reason=reason,
        )


# --- Module Notes -----------------------------------------------------------
# The gateway holds only read-only collaborators, so one instance serves all requests
# concurrently. Role-store internals stay in the logs; callers see fixed messages.
