"""
portal_gateway.errors

Canonical error types shared by the gateway, the registry and its clients.

Responsibilities:
- Carry a stable machine-readable code plus a caller-safe message.
- Keep storage/collaborator detail in `details` for server-side logging only.
"""

from __future__ import annotations

from typing import Any


class PortalGatewayError(Exception):
    """Base exception for portal gateway components."""

    code = "PORTAL_GATEWAY_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class UnknownRoleError(PortalGatewayError):
    """A role value outside the canonical catalog."""

    code = "UNKNOWN_ROLE"

    def __init__(self, value: object) -> None:
        super().__init__(f"Unknown role: {value!r}", details={"value": repr(value)})
        self.value = value


class IdentityError(PortalGatewayError):
    """The bearer credential could not be exchanged for an identity."""

    code = "IDENTITY_ERROR"


class RoleStoreError(PortalGatewayError):
    """The role store could not return the caller's role grants."""

    code = "ROLE_STORE_ERROR"


class RegistryValidationError(PortalGatewayError):
    """Malformed registration or heartbeat payload."""

    code = "VALIDATION_ERROR"


class ServiceNotFoundError(PortalGatewayError):
    """Heartbeat (or lookup) for a name that was never registered."""

    code = "NOT_FOUND"

    def __init__(self, service_name: str) -> None:
        super().__init__(
            f"Service {service_name} is not registered",
            details={"service_name": service_name},
        )
        self.service_name = service_name


class RegistryUnavailableError(PortalGatewayError):
    """Registry storage (or the remote registry) failed or timed out."""

    code = "UNAVAILABLE"


# --- Module Notes -----------------------------------------------------------
# Unauthenticated/Forbidden are not exceptions: the gateway renders them as
# AuthDecision values (see services.auth_gateway).
