"""
Default configuration for the rail-authz library.

The goal of this module is to expose a single source of truth for every
setting that the library actually consumes. Projects override any of these
through the ``RAIL_AUTHZ`` dict in their Django settings.
"""

from __future__ import annotations

from typing import Any

LIBRARY_VERSION = "0.1.0"
LIBRARY_NAME = "rail-authz"


# --------------------------------------------------------------------------- #
# Library-wide defaults (grouped by feature area)
# --------------------------------------------------------------------------- #
LIBRARY_DEFAULTS: dict[str, Any] = {
    "authz_settings": {
        # Role held by callers that present no identity at all; None disables it.
        "guest_role": "guest",
        # Roles added for Django users carrying the superuser / staff flags.
        "superuser_role": "superadmin",
        "staff_role": None,
        # Static hierarchy: {"editor": ["admin"], "admin": []}
        "roles": {},
        # Static grants: {"post.delete": ["admin"]}
        "permissions": {},
        # Explicit roles.json documents to load.
        "role_files": [],
        # Scan installed apps for a roles.json file.
        "load_app_role_files": False,
        # Read roles and grants from django.contrib.auth groups.
        "use_django_groups": False,
        # {"route": [["admin*", ["admin"]]], "route_permissions": [...],
        #  "controller": [["PostController", ["edit"], ["editor"]]]}
        "guards": {},
        # Verdict when no guard rule matches: "allow" or "deny".
        "protection_policy": "allow",
    },
    "cache_settings": {
        "enabled": True,
        # "django" uses django.core.cache.caches[alias], "memory" stays in-process.
        "backend": "django",
        "alias": "default",
        "ttl_seconds": 300,
        "key_prefix": "rail:authz",
        # Recompute directly when the cache backend is down.
        "bypass_on_error": True,
    },
    "audit_settings": {
        "log_denies": True,
        "log_all": False,
    },
}

PROTECTION_POLICIES = ("allow", "deny")
CACHE_BACKENDS = ("django", "memory")

__all__ = [
    "LIBRARY_VERSION",
    "LIBRARY_NAME",
    "LIBRARY_DEFAULTS",
    "PROTECTION_POLICIES",
    "CACHE_BACKENDS",
]
