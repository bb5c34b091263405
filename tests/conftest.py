import pytest
from django.core.cache import caches

from rail_authz.config_proxy import clear_runtime_settings
from rail_authz.service import reset_authorization_service


@pytest.fixture(autouse=True)
def _isolate_authz_state():
    clear_runtime_settings()
    reset_authorization_service()
    caches["default"].clear()
    yield
    clear_runtime_settings()
    reset_authorization_service()
    caches["default"].clear()
