"""
tests.test_roles

Role catalog and hierarchy behavior.
"""

from __future__ import annotations

import itertools

import pytest

from portal_gateway.auth.roles import DEFAULT_HIERARCHY, Role, RoleHierarchy, parse_role
from portal_gateway.errors import UnknownRoleError


def test_levels_follow_catalog_order() -> None:
    ordered = (Role.resident, Role.syndicate, Role.manager, Role.admin)
    levels = [DEFAULT_HIERARCHY.level(r) for r in ordered]
    assert levels == [1, 2, 3, 4]


@pytest.mark.parametrize(("have", "need"), list(itertools.product(Role, Role)))
def test_covers_matches_level_comparison(have: Role, need: Role) -> None:
    expected = DEFAULT_HIERARCHY.level(have) >= DEFAULT_HIERARCHY.level(need)
    assert DEFAULT_HIERARCHY.covers(have, need) is expected


def test_level_accepts_role_strings() -> None:
    assert DEFAULT_HIERARCHY.level("manager") == 3
    assert DEFAULT_HIERARCHY.covers("admin", "resident")


@pytest.mark.parametrize("value", ["super_admin", "ADMIN", "", "admin "])
def test_unknown_role_is_rejected(value: str) -> None:
    with pytest.raises(UnknownRoleError) as exc:
        DEFAULT_HIERARCHY.level(value)
    assert exc.value.value == value


def test_highest_picks_max_level() -> None:
    assert DEFAULT_HIERARCHY.highest({Role.resident, Role.manager, Role.syndicate}) is Role.manager
    assert DEFAULT_HIERARCHY.highest([Role.admin]) is Role.admin


def test_highest_of_empty_set_is_none() -> None:
    assert DEFAULT_HIERARCHY.highest(frozenset()) is None


def test_highest_rejects_unknown_members() -> None:
    with pytest.raises(UnknownRoleError):
        DEFAULT_HIERARCHY.highest(["resident", "super_admin"])


def test_levels_must_be_distinct() -> None:
    with pytest.raises(ValueError):
        RoleHierarchy({Role.resident: 1, Role.admin: 1})


def test_partial_hierarchy_rejects_roles_it_does_not_rank() -> None:
    h = RoleHierarchy({Role.resident: 1, Role.admin: 2})
    with pytest.raises(UnknownRoleError):
        h.level(Role.manager)


def test_parse_role() -> None:
    assert parse_role("syndicate") is Role.syndicate
    assert parse_role(Role.admin) is Role.admin
    with pytest.raises(UnknownRoleError):
        parse_role("root")
