"""
Provider protocols and shared helpers.

A role provider yields the hierarchy, a permission provider yields the
permission -> granting roles mapping. Both expose a ``cache_key`` that
identifies their content for the cache layer.
"""

import hashlib
import json
from typing import Any, Iterable, Mapping, Protocol, Union, runtime_checkable

from ..types import RoleDefinition

RoleEntry = Union[RoleDefinition, tuple[str, Iterable[str]]]


@runtime_checkable
class RoleProvider(Protocol):
    cache_key: str

    def load_roles(self) -> Iterable[RoleEntry]: ...


@runtime_checkable
class PermissionProvider(Protocol):
    cache_key: str

    def load_grants(self) -> Mapping[str, Iterable[str]]: ...


def _stable_json_dumps(value: Any) -> str:
    """Serialize a Python object to JSON in a stable way."""
    return json.dumps(
        value,
        sort_keys=True,
        ensure_ascii=False,
        default=str,
        separators=(",", ":"),
    )


def stable_digest(payload: Any) -> str:
    """Return a short stable hash for a provider payload."""
    digest = hashlib.sha256(_stable_json_dumps(payload).encode("utf-8")).hexdigest()
    return digest[:24]


def invert_role_permissions(definitions: Iterable[RoleDefinition]) -> dict[str, set[str]]:
    """Turn role -> permissions definitions into permission -> roles grants."""
    grants: dict[str, set[str]] = {}
    for definition in definitions:
        for permission in definition.permissions:
            grants.setdefault(permission, set()).add(definition.name)
    return grants


__all__ = [
    "RoleEntry",
    "RoleProvider",
    "PermissionProvider",
    "stable_digest",
    "invert_role_permissions",
]
