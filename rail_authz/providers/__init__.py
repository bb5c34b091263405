"""
Role and permission providers.

Exports:
    - RoleProvider / PermissionProvider: provider protocols
    - InMemoryRoleProvider / InMemoryPermissionProvider: static mappings
    - JsonFileProvider: a single roles.json document
    - AppRoleFilesProvider: roles.json files of installed apps
    - DjangoGroupProvider: django.contrib.auth groups and their permissions
    - CompositeRoleProvider: several role providers merged into one
"""

from .base import PermissionProvider, RoleProvider, stable_digest
from .composite import CompositeRoleProvider
from .django_groups import DjangoGroupProvider
from .json_file import AppRoleFilesProvider, JsonFileProvider
from .memory import InMemoryPermissionProvider, InMemoryRoleProvider

__all__ = [
    "RoleProvider",
    "PermissionProvider",
    "stable_digest",
    "InMemoryRoleProvider",
    "InMemoryPermissionProvider",
    "JsonFileProvider",
    "AppRoleFilesProvider",
    "DjangoGroupProvider",
    "CompositeRoleProvider",
]
