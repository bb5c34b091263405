"""
Configuration management for rail-authz.

This module provides a settings proxy that resolves configuration from
runtime overrides, the Django ``RAIL_AUTHZ`` setting and library defaults.
"""

from typing import Any, Optional

from django.conf import settings

from .defaults import CACHE_BACKENDS, LIBRARY_DEFAULTS, PROTECTION_POLICIES

SETTINGS_NAME = "RAIL_AUTHZ"

# Runtime storage for overrides (avoids modifying Django settings)
_RUNTIME_SETTINGS: dict[str, Any] = {}

# Marks a key absent from a source; an explicit None is a configured value
_MISSING = object()


class SettingsProxy:
    """
    Proxy for accessing rail-authz settings with hierarchical resolution.

    Settings are resolved in the following order:
    1. Runtime overrides (via configure_runtime_settings)
    2. Global Django settings (RAIL_AUTHZ)
    3. Library defaults (LIBRARY_DEFAULTS)
    """

    def __init__(self):
        self._cache: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value with hierarchical resolution and caching.

        Args:
            key: Setting key to retrieve (dot notation for nested access)
            default: Default value if setting is not found

        Returns:
            The setting value from the highest priority source
        """
        if key in self._cache:
            return self._cache[key]

        for source in (
            self._get_runtime_setting,
            self._get_django_setting,
            self._get_library_default,
        ):
            value = source(key)
            if value is not _MISSING:
                self._cache[key] = value
                return value

        self._cache[key] = default
        return default

    def _get_runtime_setting(self, key: str) -> Any:
        return self._get_nested_value(_RUNTIME_SETTINGS, key)

    def _get_django_setting(self, key: str) -> Any:
        return self._get_nested_value(getattr(settings, SETTINGS_NAME, {}), key)

    def _get_library_default(self, key: str) -> Any:
        return self._get_nested_value(LIBRARY_DEFAULTS, key)

    def _get_nested_value(self, data: dict[str, Any], key: str) -> Any:
        """
        Get nested value from dictionary using dot notation.

        Args:
            data: Dictionary to search in
            key: Key to retrieve (supports dot notation for nested access)

        Returns:
            The value or _MISSING if not found
        """
        if not isinstance(data, dict):
            return _MISSING

        current = data
        for k in key.split("."):
            if not isinstance(current, dict) or k not in current:
                return _MISSING
            current = current[k]
        return current

    def clear_cache(self) -> None:
        """Clear the settings cache."""
        self._cache.clear()

    def validate(self) -> dict[str, Any]:
        """
        Validate current settings configuration.

        Returns:
            Dictionary with validation results
        """
        results = {"valid": True, "errors": [], "warnings": []}

        policy = self.get("authz_settings.protection_policy")
        if policy not in PROTECTION_POLICIES:
            results["errors"].append(
                f"authz_settings.protection_policy must be one of {PROTECTION_POLICIES}, got {policy!r}"
            )

        backend = self.get("cache_settings.backend")
        if self.get("cache_settings.enabled") and backend not in CACHE_BACKENDS:
            results["errors"].append(
                f"cache_settings.backend must be one of {CACHE_BACKENDS}, got {backend!r}"
            )

        ttl = self.get("cache_settings.ttl_seconds")
        if ttl is not None and (not isinstance(ttl, int) or ttl < 0):
            results["errors"].append("cache_settings.ttl_seconds must be a non-negative integer")

        guards = self.get("authz_settings.guards", {})
        if not isinstance(guards, dict):
            results["errors"].append("authz_settings.guards must be a mapping of guard type to rules")

        if not any(
            (
                self.get("authz_settings.roles"),
                self.get("authz_settings.role_files"),
                self.get("authz_settings.load_app_role_files"),
                self.get("authz_settings.use_django_groups"),
            )
        ):
            results["warnings"].append(
                "No role source configured; every permission check will be denied"
            )

        results["valid"] = not results["errors"]
        return results


def get_settings_proxy() -> SettingsProxy:
    """Get a fresh settings proxy instance."""
    return SettingsProxy()


def get_setting(key: str, default: Any = None) -> Any:
    """
    Get a setting value using the hierarchical settings system.

    Args:
        key: Setting key to retrieve
        default: Default value if setting is not found

    Returns:
        The setting value from the highest priority source
    """
    return get_settings_proxy().get(key, default)


def configure_runtime_settings(clear_existing: bool = False, **overrides: Any) -> None:
    """
    Configure runtime settings overrides.

    Keys may use double underscores for nesting, e.g.
    ``configure_runtime_settings(cache_settings__enabled=False)``.

    Args:
        clear_existing: Whether to drop existing runtime overrides first
        **overrides: Setting key-value pairs to override
    """
    if clear_existing:
        _RUNTIME_SETTINGS.clear()

    for raw_key, value in overrides.items():
        keys = raw_key.split("__")
        current = _RUNTIME_SETTINGS
        for k in keys[:-1]:
            current = current.setdefault(k, {})
        current[keys[-1]] = value


def clear_runtime_settings() -> None:
    """Clear all runtime settings overrides."""
    _RUNTIME_SETTINGS.clear()


def validate_settings() -> dict[str, Any]:
    """Validate the effective configuration."""
    return get_settings_proxy().validate()


__all__ = [
    "SettingsProxy",
    "get_settings_proxy",
    "get_setting",
    "configure_runtime_settings",
    "clear_runtime_settings",
    "validate_settings",
]
