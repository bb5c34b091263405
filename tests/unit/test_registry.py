"""
Unit tests for the role registry.
"""

import pytest

from rail_authz.exceptions import (
    CycleError,
    DuplicateError,
    ProviderLoadError,
    RoleRegistryError,
    UnknownRoleError,
)
from rail_authz.providers import InMemoryRoleProvider
from rail_authz.registry import ResolvedRoleGraph, RoleRegistry
from rail_authz.types import RoleDefinition

pytestmark = pytest.mark.unit


def test_resolve_ancestors_includes_role_itself():
    registry = RoleRegistry()
    registry.register_role("admin")

    assert registry.resolve_ancestors("admin") == frozenset({"admin"})


def test_resolve_ancestors_follows_parent_chain():
    registry = RoleRegistry([("guest", []), ("member", ["guest"]), ("editor", ["member"])])

    assert registry.resolve_ancestors("editor") == {"editor", "member", "guest"}
    assert registry.resolve_ancestors("member") == {"member", "guest"}


def test_resolve_ancestors_handles_diamond_hierarchy():
    registry = RoleRegistry()
    registry.register_role("base")
    registry.register_role("reader", ["base"])
    registry.register_role("writer", ["base"])
    registry.register_role("editor", ["reader", "writer"])

    assert registry.resolve_ancestors("editor") == {"editor", "reader", "writer", "base"}
    # Memoized entries are reused by later resolutions.
    assert registry.resolve_ancestors("reader") == {"reader", "base"}
    assert registry.resolve_ancestors("editor") is registry.resolve_ancestors("editor")


def test_registration_resets_memoized_ancestors():
    registry = RoleRegistry()
    registry.register_role("editor", ["admin"])
    assert registry.resolve_ancestors("editor") == {"editor"}

    registry.register_role("admin")

    assert registry.resolve_ancestors("editor") == {"editor", "admin"}


def test_self_parent_is_rejected():
    registry = RoleRegistry()

    with pytest.raises(CycleError) as exc_info:
        registry.register_role("admin", ["admin"])

    assert exc_info.value.path == ["admin", "admin"]
    assert exc_info.value.code == "ROLE_CYCLE"
    assert "admin" not in registry


def test_two_role_cycle_is_rejected():
    registry = RoleRegistry()
    registry.register_role("a", ["b"])

    with pytest.raises(CycleError) as exc_info:
        registry.register_role("b", ["a"])

    assert exc_info.value.path == ["b", "a", "b"]
    assert registry.role_ids() == ["a"]


def test_longer_cycle_is_rejected():
    registry = RoleRegistry()
    registry.register_role("a", ["b"])
    registry.register_role("b", ["c"])

    with pytest.raises(CycleError):
        registry.register_role("c", ["a"])


def test_duplicate_role_is_rejected():
    registry = RoleRegistry()
    registry.register_role("admin")

    with pytest.raises(DuplicateError) as exc_info:
        registry.register_role("admin", ["guest"])

    assert exc_info.value.role_id == "admin"
    assert registry.get_role("admin").parent_roles == ()


def test_empty_role_identifier_is_rejected():
    registry = RoleRegistry()

    with pytest.raises(RoleRegistryError):
        registry.register_definition(RoleDefinition(name=""))


def test_unknown_role_raises():
    registry = RoleRegistry()

    with pytest.raises(UnknownRoleError):
        registry.resolve_ancestors("ghost")


def test_validate_rejects_dangling_parent():
    registry = RoleRegistry([("editor", ["admin"])])

    with pytest.raises(UnknownRoleError) as exc_info:
        registry.validate()

    assert exc_info.value.role_id == "admin"
    assert exc_info.value.referenced_by == "editor"


def test_snapshot_is_detached_from_registry():
    registry = RoleRegistry([("guest", []), ("member", ["guest"])])
    snapshot = registry.snapshot()

    registry.register_role("admin", ["member"])

    assert isinstance(snapshot, ResolvedRoleGraph)
    assert len(snapshot) == 2
    assert "admin" not in snapshot
    assert snapshot.resolve_ancestors("member") == {"member", "guest"}
    with pytest.raises(UnknownRoleError):
        snapshot.resolve_ancestors("admin")


def test_from_provider_builds_validated_registry():
    provider = InMemoryRoleProvider({"admin": [], "editor": ["admin"]})

    registry = RoleRegistry.from_provider(provider)

    assert len(registry) == 2
    assert registry.resolve_ancestors("editor") == {"editor", "admin"}


def test_from_provider_rejects_invalid_hierarchy():
    provider = InMemoryRoleProvider({"editor": ["admin"]})

    with pytest.raises(UnknownRoleError):
        RoleRegistry.from_provider(provider)


def test_from_provider_wraps_provider_failure():
    class _BrokenProvider:
        cache_key = "broken:roles"

        def load_roles(self):
            raise OSError("disk gone")

    with pytest.raises(ProviderLoadError) as exc_info:
        RoleRegistry.from_provider(_BrokenProvider())

    assert isinstance(exc_info.value.__cause__, OSError)
    assert "broken:roles" in str(exc_info.value)
