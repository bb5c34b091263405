"""
Role registry with hierarchy support.

Roles point at their parents; a role inherits every grant of its ancestors.
The registry rejects duplicate identifiers and edges that would close a
cycle, and resolves the transitive closure of parent edges with memoization.
"""

import logging
from collections import deque
from typing import Iterable, Iterator, Mapping, Optional, Union

from .exceptions import (
    AuthorizationError,
    CycleError,
    DuplicateRoleError,
    ProviderLoadError,
    RoleRegistryError,
    UnknownRoleError,
)
from .types import RoleDefinition

logger = logging.getLogger(__name__)

RoleEntry = Union[RoleDefinition, tuple[str, Iterable[str]]]


class ResolvedRoleGraph:
    """
    Immutable role -> ancestors map.

    This is what a reload swaps in and what the cache layer stores: every
    role is already expanded, so lookups never traverse.
    """

    def __init__(self, ancestors: Mapping[str, Iterable[str]]):
        self._ancestors: dict[str, frozenset[str]] = {
            role_id: frozenset(role_ancestors)
            for role_id, role_ancestors in ancestors.items()
        }

    def resolve_ancestors(self, role_id: str) -> frozenset[str]:
        try:
            return self._ancestors[role_id]
        except KeyError:
            raise UnknownRoleError(role_id) from None

    def has_role(self, role_id: str) -> bool:
        return role_id in self._ancestors

    def role_ids(self) -> list[str]:
        return list(self._ancestors)

    def as_dict(self) -> dict[str, frozenset[str]]:
        return dict(self._ancestors)

    def __contains__(self, role_id: object) -> bool:
        return role_id in self._ancestors

    def __len__(self) -> int:
        return len(self._ancestors)

    def __repr__(self) -> str:
        return f"ResolvedRoleGraph(roles={len(self._ancestors)})"


class RoleRegistry:
    """Mutable registry used while a role hierarchy is being loaded."""

    def __init__(self, roles: Optional[Iterable[RoleEntry]] = None):
        self._roles: dict[str, RoleDefinition] = {}
        self._memo: dict[str, frozenset[str]] = {}
        for entry in roles or ():
            self.register_definition(_coerce_entry(entry))

    # --- Registration ---

    def register_role(
        self, role_id: str, parent_ids: Optional[Iterable[str]] = None
    ) -> RoleDefinition:
        """Register a role with its parent roles."""
        return self.register_definition(RoleDefinition.build(role_id, parent_ids))

    def register_definition(self, definition: RoleDefinition) -> RoleDefinition:
        """
        Register a role definition.

        Raises:
            DuplicateRoleError: If the role is already registered.
            CycleError: If the parent edges would close a cycle.
        """
        role_id = definition.name
        if not role_id or not isinstance(role_id, str):
            raise RoleRegistryError("Role identifier must be a non-empty string")
        if role_id in self._roles:
            raise DuplicateRoleError(role_id)

        cycle = self._find_cycle(role_id, definition.parent_roles)
        if cycle:
            raise CycleError(role_id, cycle)

        self._roles[role_id] = definition
        self._memo.clear()
        logger.debug("Role '%s' registered (parents=%s)", role_id, list(definition.parent_roles))
        return definition

    def _find_cycle(self, role_id: str, parent_ids: Iterable[str]) -> Optional[list[str]]:
        """Return the path leading from ``role_id`` back to itself, if any."""
        stack = [(parent, [role_id, parent]) for parent in reversed(list(parent_ids))]
        visited: set[str] = set()
        while stack:
            current, path = stack.pop()
            if current == role_id:
                return path
            if current in visited:
                continue
            visited.add(current)
            definition = self._roles.get(current)
            if definition is None:
                continue
            for parent in reversed(definition.parent_roles):
                stack.append((parent, path + [parent]))
        return None

    def validate(self) -> None:
        """Reject hierarchies that reference parents which were never registered."""
        for role_id, definition in self._roles.items():
            for parent in definition.parent_roles:
                if parent not in self._roles:
                    raise UnknownRoleError(parent, referenced_by=role_id)

    # --- Queries ---

    def get_role(self, role_id: str) -> Optional[RoleDefinition]:
        return self._roles.get(role_id)

    def has_role(self, role_id: str) -> bool:
        return role_id in self._roles

    def role_ids(self) -> list[str]:
        return list(self._roles)

    def resolve_ancestors(self, role_id: str) -> frozenset[str]:
        """
        Return the role itself plus every role reachable through parent edges.

        Raises:
            UnknownRoleError: If the role is not registered.
        """
        if role_id not in self._roles:
            raise UnknownRoleError(role_id)

        cached = self._memo.get(role_id)
        if cached is not None:
            return cached

        ancestors: set[str] = set()
        queue = deque([role_id])
        while queue:
            current = queue.popleft()
            if current in ancestors:
                continue
            memoized = self._memo.get(current)
            if memoized is not None:
                ancestors.update(memoized)
                continue
            definition = self._roles.get(current)
            if definition is None:
                logger.debug("Skipping unregistered parent role '%s'", current)
                continue
            ancestors.add(current)
            queue.extend(definition.parent_roles)

        result = frozenset(ancestors)
        self._memo[role_id] = result
        return result

    def ancestor_map(self) -> dict[str, frozenset[str]]:
        """Resolve every registered role."""
        return {role_id: self.resolve_ancestors(role_id) for role_id in self._roles}

    def snapshot(self) -> ResolvedRoleGraph:
        """Freeze the current hierarchy into an immutable graph."""
        return ResolvedRoleGraph(self.ancestor_map())

    # --- Construction ---

    @classmethod
    def from_provider(cls, provider: object) -> "RoleRegistry":
        """
        Build and validate a registry from a role provider.

        Raises:
            ProviderLoadError: If the provider itself fails.
            RoleRegistryError: If the loaded hierarchy is invalid.
        """
        try:
            entries = list(provider.load_roles())
        except AuthorizationError:
            raise
        except Exception as exc:
            raise ProviderLoadError(provider, exc) from exc

        registry = cls(entries)
        registry.validate()
        logger.info(
            "Loaded %d roles from %s",
            len(registry),
            getattr(provider, "cache_key", type(provider).__name__),
        )
        return registry

    def __contains__(self, role_id: object) -> bool:
        return role_id in self._roles

    def __iter__(self) -> Iterator[RoleDefinition]:
        return iter(self._roles.values())

    def __len__(self) -> int:
        return len(self._roles)


def _coerce_entry(entry: RoleEntry) -> RoleDefinition:
    if isinstance(entry, RoleDefinition):
        return entry
    if isinstance(entry, str):
        return RoleDefinition(name=entry)
    role_id, parent_ids = entry
    return RoleDefinition.build(role_id, parent_ids)


__all__ = ["RoleRegistry", "ResolvedRoleGraph"]
