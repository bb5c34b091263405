"""
Unit tests for the authorization resolver and assertions.
"""

from types import SimpleNamespace

import pytest

from rail_authz.aggregate import PermissionProviderAggregate
from rail_authz.assertions import AssertionRegistry
from rail_authz.identity import StaticIdentity
from rail_authz.providers import InMemoryPermissionProvider
from rail_authz.registry import RoleRegistry
from rail_authz.resolver import AuthorizationResolver

pytestmark = pytest.mark.unit


def _resolver(roles, grants, assertions=None):
    return AuthorizationResolver(
        RoleRegistry(roles),
        PermissionProviderAggregate([InMemoryPermissionProvider(grants)]),
        assertions,
    )


def test_admin_is_granted_delete_post_and_guest_is_not():
    resolver = _resolver([("admin", []), ("guest", [])], {"deletePost": ["admin"]})

    assert resolver.is_granted(StaticIdentity(["admin"]), "deletePost") is True
    assert resolver.is_granted(StaticIdentity(["guest"]), "deletePost") is False


def test_identity_without_roles_is_denied_everything():
    resolver = _resolver([("admin", [])], {"p": ["admin"], "q": ["admin"]})
    identity = StaticIdentity()

    assert resolver.is_granted(identity, "p") is False
    assert resolver.is_granted(identity, "q") is False
    assert resolver.explain(identity, "p").reason == "no_roles"


def test_child_role_inherits_parent_grants():
    resolver = _resolver([("admin", []), ("editor", ["admin"])], {"p": ["admin"]})

    assert resolver.is_granted(StaticIdentity(["editor"]), "p") is True
    assert resolver.effective_roles(StaticIdentity(["editor"])) == {"editor", "admin"}


def test_parent_role_does_not_inherit_child_grants():
    resolver = _resolver([("admin", []), ("editor", ["admin"])], {"p": ["editor"]})

    assert resolver.is_granted(StaticIdentity(["admin"]), "p") is False


def test_unknown_permission_is_denied():
    resolver = _resolver([("admin", [])], {"p": ["admin"]})

    explanation = resolver.explain(StaticIdentity(["admin"]), "unconfigured")

    assert explanation.allowed is False
    assert explanation.reason == "permission_missing"
    assert explanation.granting_roles == set()


def test_unknown_held_role_contributes_nothing():
    resolver = _resolver([("admin", [])], {"p": ["admin"]})

    assert resolver.is_granted(StaticIdentity(["ghost"]), "p") is False
    assert resolver.is_granted(StaticIdentity(["ghost", "admin"]), "p") is True
    assert resolver.expand_roles(["ghost"]) == frozenset()


def test_assertion_can_veto_granted_permission():
    assertions = AssertionRegistry(
        {"post.delete": lambda identity, post: post.author == identity.identifier}
    )
    resolver = _resolver([("editor", [])], {"post.delete": ["editor"]}, assertions)
    author = StaticIdentity(["editor"], identifier="alice")
    other = StaticIdentity(["editor"], identifier="bob")
    post = SimpleNamespace(author="alice")

    assert resolver.is_granted(author, "post.delete", post) is True
    assert resolver.is_granted(other, "post.delete", post) is False

    explanation = resolver.explain(other, "post.delete", post)
    assert explanation.reason == "assertion_denied"
    assert explanation.assertion_checked is True
    assert explanation.assertion_allowed is False


def test_assertion_is_not_run_without_role_grant():
    calls = []
    assertions = AssertionRegistry({"p": lambda identity, context: calls.append(1) or True})
    resolver = _resolver([("admin", []), ("guest", [])], {"p": ["admin"]}, assertions)

    assert resolver.is_granted(StaticIdentity(["guest"]), "p") is False
    assert calls == []


def test_assertion_error_denies(caplog):
    def _explode(identity, context):
        raise KeyError("owner")

    resolver = _resolver(
        [("admin", [])], {"p": ["admin"]}, AssertionRegistry({"p": _explode})
    )

    with caplog.at_level("WARNING", logger="rail_authz.resolver"):
        explanation = resolver.explain(StaticIdentity(["admin"]), "p")

    assert explanation.allowed is False
    assert explanation.reason == "assertion_error"
    assert "Assertion for 'p' failed" in caplog.text


def test_explain_reports_granting_and_effective_roles():
    resolver = _resolver(
        [("guest", []), ("member", ["guest"])], {"post.read": ["guest"]}
    )

    explanation = resolver.explain(StaticIdentity(["member"]), "post.read")

    assert explanation.allowed is True
    assert explanation.reason == "permission_granted"
    assert explanation.identity_roles == ["member"]
    assert explanation.effective_roles == {"member", "guest"}
    assert explanation.granting_roles == {"guest"}
    assert explanation.assertion_checked is False


def test_assertion_registry_rejects_non_callables():
    registry = AssertionRegistry()

    with pytest.raises(TypeError):
        registry.register("p", "not callable")


def test_assertion_registry_tracks_versions():
    registry = AssertionRegistry()
    registry.register("p", lambda identity, context: True)
    registry.register("p", lambda identity, context: False)
    registry.unregister("p")
    registry.unregister("p")

    assert registry.version == 3
    assert "p" not in registry
    assert len(registry) == 0
