"""
Type definitions for the authorization engine.

This module contains the dataclasses shared across the package:
- RoleDefinition: a role, its parent roles and (optionally) the permissions
  a file or settings source grants it
- PermissionExplanation: comprehensive explanation of a permission decision
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional


@dataclass(frozen=True)
class RoleDefinition:
    """Definition of a role in the hierarchy."""

    name: str
    parent_roles: tuple[str, ...] = ()
    permissions: tuple[str, ...] = ()
    description: str = ""

    @classmethod
    def build(
        cls,
        name: str,
        parent_roles: Optional[Iterable[str]] = None,
        permissions: Optional[Iterable[str]] = None,
        description: str = "",
    ) -> "RoleDefinition":
        """Create a definition from loose iterables, dropping duplicate entries."""
        return cls(
            name=name,
            parent_roles=tuple(dict.fromkeys(parent_roles or ())),
            permissions=tuple(dict.fromkeys(permissions or ())),
            description=description,
        )


@dataclass
class PermissionExplanation:
    """Comprehensive explanation of a permission evaluation result."""

    permission: str
    allowed: bool
    reason: Optional[str] = None
    identity_roles: list[str] = field(default_factory=list)
    effective_roles: set[str] = field(default_factory=set)
    granting_roles: set[str] = field(default_factory=set)
    assertion_checked: bool = False
    assertion_allowed: Optional[bool] = None


__all__ = ["RoleDefinition", "PermissionExplanation"]
