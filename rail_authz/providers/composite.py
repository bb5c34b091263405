"""
Composite role provider.

Concatenates the hierarchies of several role providers into one. A role that
appears in more than one provider is emitted once with the union of its
parents, so e.g. Django groups can be arranged into a hierarchy declared in
settings.
"""

from typing import Iterable

from ..types import RoleDefinition
from .base import stable_digest


class CompositeRoleProvider:
    def __init__(self, providers: Iterable[object]):
        self.providers = list(providers)
        self.cache_key = "composite:" + stable_digest(
            [getattr(provider, "cache_key", type(provider).__name__) for provider in self.providers]
        )

    def load_roles(self) -> list[RoleDefinition]:
        merged: dict[str, RoleDefinition] = {}
        for provider in self.providers:
            for entry in provider.load_roles():
                definition = _as_definition(entry)
                existing = merged.get(definition.name)
                if existing is None:
                    merged[definition.name] = definition
                    continue
                merged[definition.name] = RoleDefinition.build(
                    definition.name,
                    parent_roles=existing.parent_roles + definition.parent_roles,
                    permissions=existing.permissions + definition.permissions,
                    description=existing.description or definition.description,
                )
        return list(merged.values())

    def __repr__(self) -> str:
        return f"CompositeRoleProvider(providers={self.providers!r})"


def _as_definition(entry: object) -> RoleDefinition:
    if isinstance(entry, RoleDefinition):
        return entry
    if isinstance(entry, str):
        return RoleDefinition(name=entry)
    name, parents = entry
    return RoleDefinition.build(name, parents)


__all__ = ["CompositeRoleProvider"]
