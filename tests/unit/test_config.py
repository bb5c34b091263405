"""
Unit tests for the settings proxy.
"""

import pytest
from django.test import override_settings

from rail_authz.config_proxy import (
    clear_runtime_settings,
    configure_runtime_settings,
    get_setting,
    validate_settings,
)

pytestmark = pytest.mark.unit


def test_library_defaults_fill_missing_settings():
    assert get_setting("cache_settings.ttl_seconds") == 300
    assert get_setting("authz_settings.protection_policy") == "allow"
    assert get_setting("authz_settings.missing", "fallback") == "fallback"


def test_django_settings_override_defaults():
    assert get_setting("authz_settings.roles")["admin"] == ["editor"]


def test_runtime_settings_take_precedence():
    configure_runtime_settings(authz_settings__guest_role="visitor")
    assert get_setting("authz_settings.guest_role") == "visitor"

    clear_runtime_settings()
    assert get_setting("authz_settings.guest_role") == "guest"


def test_configure_runtime_settings_can_replace_existing():
    configure_runtime_settings(authz_settings__guest_role="visitor")
    configure_runtime_settings(clear_existing=True, cache_settings__ttl_seconds=10)

    assert get_setting("authz_settings.guest_role") == "guest"
    assert get_setting("cache_settings.ttl_seconds") == 10


def test_validate_accepts_test_configuration():
    results = validate_settings()

    assert results["valid"] is True
    assert results["errors"] == []


def test_validate_reports_invalid_values():
    configure_runtime_settings(
        authz_settings__protection_policy="sometimes",
        cache_settings__backend="redis",
        cache_settings__ttl_seconds=-5,
        authz_settings__guards=[["admin*", ["admin"]]],
    )

    results = validate_settings()

    assert results["valid"] is False
    assert len(results["errors"]) == 4


@override_settings(RAIL_AUTHZ={})
def test_validate_warns_without_role_source():
    results = validate_settings()

    assert results["valid"] is True
    assert any("No role source" in warning for warning in results["warnings"])


def test_explicit_none_overrides_library_default():
    configure_runtime_settings(authz_settings__guest_role=None)

    assert get_setting("authz_settings.guest_role", "fallback") is None


@override_settings(RAIL_AUTHZ={"authz_settings": {"guest_role": None, "roles": {"guest": []}}})
def test_guest_role_can_be_disabled_from_django_settings():
    from rail_authz.service import AuthorizationService

    service = AuthorizationService.from_settings()

    assert service.guest_role is None
    assert service.effective_roles(None) == frozenset()
