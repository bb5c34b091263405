"""
Django app configuration for rail-authz.

On startup the effective configuration is validated and problems are logged;
the authorization service itself is built lazily on first use.
"""

import logging

from django.apps import AppConfig as BaseAppConfig

logger = logging.getLogger(__name__)


class AppConfig(BaseAppConfig):
    """Django app configuration for rail-authz."""

    name = "rail_authz"
    verbose_name = "Rail Authorization"
    label = "rail_authz"

    def ready(self):
        """Validate library settings after Django has loaded."""
        from .config_proxy import validate_settings

        results = validate_settings()
        for error in results["errors"]:
            logger.error("rail-authz configuration error: %s", error)
        for warning in results["warnings"]:
            logger.warning("rail-authz configuration warning: %s", warning)
