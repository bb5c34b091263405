"""
Unit tests for the authz management command.
"""

from io import StringIO

import pytest
from django.core.management import call_command

from rail_authz.service import get_authorization_service

pytestmark = pytest.mark.unit


def test_check_reports_granted_permission():
    out = StringIO()

    call_command("authz", "check", "post.edit", "--role", "admin", stdout=out)

    output = out.getvalue()
    assert "post.edit: granted (permission_granted)" in output
    assert "effective roles: admin, editor, guest, member" in output
    assert "granting roles: editor" in output


def test_check_reports_denied_permission():
    out = StringIO()

    call_command("authz", "check", "post.delete", "--role", "member", "--role", "ghost", stdout=out)

    assert "post.delete: denied (permission_missing)" in out.getvalue()


def test_guard_reports_verdict():
    out = StringIO()

    call_command("authz", "guard", "admin/users", "--role", "editor", stdout=out)

    assert (
        "admin/users: denied (guard=route, rule=admin*, reason=requirements_missing)"
        in out.getvalue()
    )


def test_clear_cache_invalidates_service_cache():
    service = get_authorization_service()
    service.is_granted(["admin"], "post.delete")
    assert service.cache.stats()["keys"]

    out = StringIO()
    call_command("authz", "clear-cache", stdout=out)

    assert "Authorization cache cleared" in out.getvalue()
    assert service.cache.stats()["generation"] == 1
