"""
portal_gateway.auth.policy

Route table mapping path prefixes to a minimum required role.

Responsibilities:
- Hold the RouteRule sequence as an explicit ordered tuple.
- Resolve a requested path to "public" (None) or the first matching rule's role.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from portal_gateway.auth.roles import Role

if TYPE_CHECKING:  # pragma: no cover
    from portal_gateway.settings import Settings


@dataclass(frozen=True, slots=True)
class RouteRule:
    prefix: str
    required_role: Role


class RoutePolicy:
    """
    First declared match wins. A later, longer prefix never overrides an earlier
    one: with [/admin, /admin/sub] the path /admin/sub resolves through /admin.
    """

    def __init__(self, rules: Iterable[RouteRule]) -> None:
        self._rules: tuple[RouteRule, ...] = tuple(rules)

    @classmethod
    def from_settings(cls, settings: Settings) -> RoutePolicy:
        return cls(RouteRule(prefix=r.prefix, required_role=r.role) for r in settings.route_rules)

    @property
    def rules(self) -> tuple[RouteRule, ...]:
        return self._rules

    def required_role(self, path: str) -> Role | None:
        for rule in self._rules:
            if path.startswith(rule.prefix):
                return rule.required_role
        return None


# --- Module Notes -----------------------------------------------------------
# Matching is a plain string prefix test, so "/adminx" also matches "/admin".
