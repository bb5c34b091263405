"""
Static in-memory providers, optionally fed from Django settings.
"""

from typing import Iterable, Mapping, Optional, Union

from ..config_proxy import get_setting
from ..types import RoleDefinition
from .base import RoleEntry, stable_digest


class InMemoryRoleProvider:
    """
    Role hierarchy held in memory.

    Accepts either a mapping ``{"editor": ["admin"], "admin": []}`` or an
    iterable of ``RoleDefinition`` / ``(role_id, parent_ids)`` entries.
    """

    def __init__(
        self,
        roles: Union[Mapping[str, Optional[Iterable[str]]], Iterable[RoleEntry]],
        cache_key: Optional[str] = None,
    ):
        self._definitions = _build_definitions(roles)
        self.cache_key = cache_key or "memory:roles:" + stable_digest(
            [[d.name, sorted(d.parent_roles)] for d in self._definitions]
        )

    @classmethod
    def from_settings(cls) -> "InMemoryRoleProvider":
        roles = get_setting("authz_settings.roles", {}) or {}
        provider = cls(roles)
        provider.cache_key = provider.cache_key.replace("memory:", "settings:", 1)
        return provider

    def load_roles(self) -> list[RoleDefinition]:
        return list(self._definitions)

    def __repr__(self) -> str:
        return f"InMemoryRoleProvider(roles={len(self._definitions)})"


class InMemoryPermissionProvider:
    """Permission grants held in memory: ``{"post.delete": ["admin"]}``."""

    def __init__(
        self,
        grants: Mapping[str, Iterable[str]],
        cache_key: Optional[str] = None,
    ):
        self._grants: dict[str, frozenset[str]] = {}
        for permission, roles in grants.items():
            if isinstance(roles, str):
                roles = [roles]
            self._grants[str(permission)] = frozenset(str(role) for role in roles or ())
        self.cache_key = cache_key or "memory:permissions:" + stable_digest(
            {permission: sorted(roles) for permission, roles in self._grants.items()}
        )

    @classmethod
    def from_settings(cls) -> "InMemoryPermissionProvider":
        grants = get_setting("authz_settings.permissions", {}) or {}
        provider = cls(grants)
        provider.cache_key = provider.cache_key.replace("memory:", "settings:", 1)
        return provider

    def load_grants(self) -> dict[str, set[str]]:
        return {permission: set(roles) for permission, roles in self._grants.items()}

    def __repr__(self) -> str:
        return f"InMemoryPermissionProvider(permissions={len(self._grants)})"


def _build_definitions(
    roles: Union[Mapping[str, Optional[Iterable[str]]], Iterable[RoleEntry]],
) -> list[RoleDefinition]:
    if isinstance(roles, Mapping):
        definitions = []
        for name, parents in roles.items():
            if isinstance(parents, str):
                parents = [parents]
            definitions.append(RoleDefinition.build(str(name), parents))
        return definitions

    definitions = []
    for entry in roles:
        if isinstance(entry, RoleDefinition):
            definitions.append(entry)
        elif isinstance(entry, str):
            definitions.append(RoleDefinition(name=entry))
        else:
            name, parents = entry
            definitions.append(RoleDefinition.build(name, parents))
    return definitions


__all__ = ["InMemoryRoleProvider", "InMemoryPermissionProvider"]
