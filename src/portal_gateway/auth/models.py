"""
portal_gateway.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) injected into endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass

from portal_gateway.auth.roles import DEFAULT_HIERARCHY, Role


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity plus the roles currently granted.
    """

    subject: str
    roles: frozenset[Role]

    @property
    def effective_role(self) -> Role | None:
        return DEFAULT_HIERARCHY.highest(self.roles)


# --- Module Notes -----------------------------------------------------------
# An empty role set has no effective role and is denied on every protected route.
