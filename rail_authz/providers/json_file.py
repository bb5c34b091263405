"""
Role definition providers backed by roles.json files.

A roles.json document is either a list of role objects or an object with a
``roles`` list::

    {"roles": [
        {"name": "admin", "permissions": ["post.delete"]},
        {"name": "editor", "parent_roles": ["admin"], "permissions": ["post.edit"]}
    ]}

Unlike a lenient loader, a malformed document is an error: silently dropping
a file's grants would change decisions without anyone noticing.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Union

from django.apps import apps

from ..types import RoleDefinition
from .base import invert_role_permissions, stable_digest

logger = logging.getLogger(__name__)

ROLES_FILENAME = "roles.json"


class JsonFileProvider:
    """Role and permission provider reading a single roles.json document."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.cache_key = "file:" + stable_digest(str(self.path))

    def load_definitions(self) -> list[RoleDefinition]:
        content = self.path.read_text(encoding="utf-8").strip()
        if not content:
            logger.debug("Empty roles file %s", self.path)
            return []
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in roles file {self.path}: {exc}") from exc

        return [
            _build_role_definition(role_data, self.path)
            for role_data in _extract_roles(payload, self.path)
        ]

    def load_roles(self) -> list[RoleDefinition]:
        return self.load_definitions()

    def load_grants(self) -> dict[str, set[str]]:
        return invert_role_permissions(self.load_definitions())

    def __repr__(self) -> str:
        return f"JsonFileProvider(path={str(self.path)!r})"


class AppRoleFilesProvider:
    """
    Role and permission provider scanning installed Django apps for roles.json.

    Apps without a roles.json file are skipped.
    """

    cache_key = "apps:roles.json"

    def __init__(self, app_configs: Optional[Iterable[object]] = None):
        self._app_configs = list(app_configs) if app_configs is not None else None

    def get_file_providers(self) -> list[JsonFileProvider]:
        app_configs = self._app_configs
        if app_configs is None:
            app_configs = apps.get_app_configs()

        providers = []
        for app_config in app_configs:
            app_path = getattr(app_config, "path", None)
            if not app_path:
                continue
            roles_path = Path(app_path) / ROLES_FILENAME
            if roles_path.exists():
                providers.append(JsonFileProvider(roles_path))
        return providers

    def load_roles(self) -> list[RoleDefinition]:
        definitions: list[RoleDefinition] = []
        for provider in self.get_file_providers():
            definitions.extend(provider.load_definitions())
        return definitions

    def load_grants(self) -> dict[str, set[str]]:
        grants: dict[str, set[str]] = {}
        for provider in self.get_file_providers():
            for permission, roles in provider.load_grants().items():
                grants.setdefault(permission, set()).update(roles)
        return grants


def _extract_roles(payload: object, roles_path: Path) -> list[dict[str, object]]:
    if isinstance(payload, dict):
        roles = payload.get("roles", [])
    else:
        roles = payload
    if roles is None:
        return []
    if not isinstance(roles, list):
        raise ValueError(f"Roles file {roles_path} must define a list of roles")
    for entry in roles:
        if not isinstance(entry, dict):
            raise ValueError(f"Role entry in {roles_path} must be an object")
    return roles


def _build_role_definition(role_data: dict[str, object], roles_path: Path) -> RoleDefinition:
    name = role_data.get("name")
    if not name or not isinstance(name, str):
        raise ValueError(f"Role entry missing name in {roles_path}")

    return RoleDefinition.build(
        name,
        parent_roles=_coerce_list(role_data.get("parent_roles")),
        permissions=_coerce_list(role_data.get("permissions")),
        description=str(role_data.get("description", "")),
    )


def _coerce_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(item) for item in value if item is not None]
    return [str(value)]


__all__ = ["JsonFileProvider", "AppRoleFilesProvider", "ROLES_FILENAME"]
