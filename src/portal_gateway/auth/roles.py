"""
portal_gateway.auth.roles

Canonical role catalog and hierarchy.

Responsibilities:
- Define the closed, totally ordered set of roles.
- Compare roles by level (`covers`) and pick the effective role (`highest`).
- Reject values outside the catalog with `UnknownRoleError`.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping

from portal_gateway.errors import UnknownRoleError


class Role(enum.StrEnum):
    # Values are stored in the user_roles table and sent on the wire.
    resident = "resident"
    syndicate = "syndicate"
    manager = "manager"
    admin = "admin"


def parse_role(value: Role | str) -> Role:
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError as e:
        raise UnknownRoleError(value) from e


class RoleHierarchy:
    """
    Integer levels over the role catalog; a higher level dominates every lower one.
    """

    def __init__(self, levels: Mapping[Role, int]) -> None:
        if len(set(levels.values())) != len(levels):
            raise ValueError("role levels must be distinct")
        self._levels: dict[Role, int] = dict(levels)

    def level(self, role: Role | str) -> int:
        try:
            return self._levels[parse_role(role)]
        except KeyError as e:
            raise UnknownRoleError(role) from e

    def covers(self, have: Role | str, need: Role | str) -> bool:
        return self.level(have) >= self.level(need)

    def highest(self, roles: Iterable[Role | str]) -> Role | None:
        best: Role | None = None
        for raw in roles:
            role = parse_role(raw)
            if best is None or self.level(role) > self.level(best):
                best = role
        return best


DEFAULT_HIERARCHY = RoleHierarchy(
    {
        Role.resident: 1,
        Role.syndicate: 2,
        Role.manager: 3,
        Role.admin: 4,
    }
)


# --- Module Notes -----------------------------------------------------------
# This is the only role catalog in the codebase; the gateway, the role store and the
# admin dependencies all resolve roles through it.
