"""
Unit tests for the authorization service facade.
"""

import json
from types import SimpleNamespace

import pytest
from django.contrib.auth.models import Group, User

from rail_authz.cache import CacheLayer, DjangoCacheBackend
from rail_authz.config_proxy import configure_runtime_settings
from rail_authz.providers import InMemoryPermissionProvider, InMemoryRoleProvider
from rail_authz.service import (
    AuthorizationService,
    get_authorization_service,
    reset_authorization_service,
)

pytestmark = pytest.mark.unit


class _MutableGrants:
    cache_key = "mutable:permissions"

    def __init__(self, grants):
        self.grants = grants
        self.calls = 0

    def load_grants(self):
        self.calls += 1
        return self.grants


def _service(**kwargs):
    return AuthorizationService.from_providers(
        InMemoryRoleProvider({"guest": [], "admin": []}),
        [InMemoryPermissionProvider({"deletePost": ["admin"], "readPost": ["guest"]})],
        **kwargs,
    )


def test_service_grants_by_role():
    service = _service()

    assert service.is_granted(["admin"], "deletePost") is True
    assert service.is_granted(["guest"], "deletePost") is False
    assert service.has_role(["admin"], "admin") is True


def test_none_identity_holds_guest_role():
    service = _service(guest_role="guest")

    assert service.is_granted(None, "readPost") is True
    assert service.is_granted(None, "deletePost") is False
    assert _service().is_granted(None, "readPost") is False


def test_registered_assertion_vetoes_decision():
    service = _service()
    service.register_assertion("deletePost", lambda identity, post: not post.locked)

    assert service.is_granted(["admin"], "deletePost", SimpleNamespace(locked=False)) is True
    assert service.is_granted(["admin"], "deletePost", SimpleNamespace(locked=True)) is False


def test_denied_decisions_are_audited(caplog):
    service = _service()

    with caplog.at_level("INFO", logger="rail_authz.audit"):
        service.is_granted(["guest"], "deletePost")
        service.is_granted(["admin"], "deletePost")

    audit_records = [record for record in caplog.records if record.name == "rail_authz.audit"]
    assert len(audit_records) == 1
    assert "Permission denied" in audit_records[0].getMessage()
    assert "permission_missing" in audit_records[0].getMessage()


def test_audit_all_logs_grants(caplog):
    service = _service(audit_all=True)

    with caplog.at_level("INFO", logger="rail_authz.audit"):
        service.is_granted(["admin"], "deletePost")

    assert "Permission granted" in caplog.text


def test_reload_picks_up_new_grants():
    grants = _MutableGrants({"p": ["admin"]})
    cache = CacheLayer()
    service = AuthorizationService.from_providers(
        InMemoryRoleProvider({"admin": [], "editor": []}), [grants], cache=cache
    )
    assert service.is_granted(["editor"], "p") is False

    grants.grants = {"p": ["editor"]}
    assert service.is_granted(["editor"], "p") is False

    service.reload()

    assert service.is_granted(["editor"], "p") is True
    assert grants.calls == 2


def test_warm_loads_roles_and_grants():
    grants = _MutableGrants({"p": ["admin"]})
    service = AuthorizationService.from_providers(
        InMemoryRoleProvider({"admin": []}), [grants], cache=CacheLayer()
    )

    service.warm()
    service.is_granted(["admin"], "p")

    assert grants.calls == 1
    assert service.cache.stats()["misses"] == 2


def test_from_settings_uses_configured_hierarchy():
    service = AuthorizationService.from_settings()

    assert service.is_granted(["admin"], "post.delete") is True
    assert service.is_granted(["editor"], "post.read") is True
    assert service.is_granted(["member"], "post.edit") is False
    assert service.is_granted(None, "post.read") is True
    assert isinstance(service.cache.backend, DjangoCacheBackend)


def test_from_settings_builds_route_guards():
    service = AuthorizationService.from_settings()

    assert service.check_guards("admin/users", ["admin"]).allowed is True
    assert service.check_guards("admin/users", ["editor"]).allowed is False
    assert service.check_guards("account/profile", ["editor"]).allowed is True
    assert service.check_guards("blog", None).allowed is True


def test_guard_denials_are_audited(caplog):
    service = AuthorizationService.from_settings()

    with caplog.at_level("INFO", logger="rail_authz.audit"):
        service.check_guards("admin/users", ["member"])

    assert "Guard denied: identifier=admin/users guard=route rule=admin*" in caplog.text


def test_from_settings_without_cache():
    configure_runtime_settings(cache_settings__enabled=False)

    service = AuthorizationService.from_settings()

    assert service.cache is None
    assert service.is_granted(["admin"], "post.delete") is True


def test_from_settings_reads_role_files(tmp_path):
    roles_file = tmp_path / "roles.json"
    roles_file.write_text(
        json.dumps({"roles": [{"name": "moderator", "parent_roles": ["editor"], "permissions": ["comment.hide"]}]}),
        encoding="utf-8",
    )
    configure_runtime_settings(authz_settings__role_files=[str(roles_file)])

    service = AuthorizationService.from_settings()

    assert service.is_granted(["moderator"], "comment.hide") is True
    assert service.is_granted(["moderator"], "post.edit") is True
    assert service.is_granted(["editor"], "comment.hide") is False


@pytest.mark.django_db
def test_from_settings_reads_django_groups():
    configure_runtime_settings(authz_settings__use_django_groups=True)
    user = User.objects.create_user(username="grouped", password="pass12345")
    user.groups.add(Group.objects.create(name="editor"))

    service = AuthorizationService.from_settings()

    assert service.is_granted(user, "post.edit") is True
    assert service.is_granted(user, "post.delete") is False


def test_global_service_is_shared_until_reset():
    first = get_authorization_service()

    assert get_authorization_service() is first

    reset_authorization_service()
    assert get_authorization_service() is not first


class _CountingDjangoBackend(DjangoCacheBackend):
    def __init__(self):
        super().__init__("default")
        self.gets = 0

    def get(self, key):
        self.gets += 1
        return super().get(key)


def test_decision_reads_role_graph_once():
    roles = {f"role{index}": [] for index in range(10)}
    backend = _CountingDjangoBackend()
    service = AuthorizationService.from_providers(
        InMemoryRoleProvider(roles),
        [InMemoryPermissionProvider({"p": ["role9"]})],
        cache=CacheLayer(backend),
    )
    service.warm()
    backend.gets = 0

    assert service.is_granted(list(roles), "p") is True
    assert backend.gets == 2
