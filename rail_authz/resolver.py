"""
Authorization resolver.

Decides whether an identity is granted a permission: the identity's held
roles are expanded through the hierarchy, intersected with the roles the
permission is granted to, and a registered assertion may veto the result.
"""

import logging
from typing import Any, Iterable, Optional

from .assertions import AssertionRegistry
from .cache import CachedRoleRegistry
from .exceptions import UnknownRoleError
from .identity import Identity
from .types import PermissionExplanation

logger = logging.getLogger(__name__)


class AuthorizationResolver:
    """
    Role-based decision engine.

    ``roles`` provides ``resolve_ancestors(role_id)`` (a ``RoleRegistry``,
    ``ResolvedRoleGraph`` or ``CachedRoleRegistry``); ``permissions`` provides
    ``granting_roles(permission)`` (a ``PermissionProviderAggregate`` or
    ``CachedPermissionAggregate``).
    """

    def __init__(
        self,
        roles: Any,
        permissions: Any,
        assertions: Optional[AssertionRegistry] = None,
    ):
        self.roles = roles
        self.permissions = permissions
        self.assertions = assertions if assertions is not None else AssertionRegistry()

    def expand_roles(self, role_ids: Iterable[str]) -> frozenset[str]:
        """Union of every held role and its ancestors; unknown roles contribute nothing."""
        # One graph per decision: a reload never mixes two graphs into one answer.
        graph = self.roles.snapshot() if isinstance(self.roles, CachedRoleRegistry) else self.roles
        effective: set[str] = set()
        for role_id in role_ids:
            try:
                effective.update(graph.resolve_ancestors(role_id))
            except UnknownRoleError:
                logger.debug("Ignoring unregistered role '%s'", role_id)
        return frozenset(effective)

    def effective_roles(self, identity: Identity) -> frozenset[str]:
        return self.expand_roles(identity.get_roles())

    def is_granted(self, identity: Identity, permission: str, context: Any = None) -> bool:
        """Check if an identity is granted a permission."""
        allowed, _ = self._evaluate(identity, permission, context, include_explanation=False)
        return allowed

    def explain(
        self, identity: Identity, permission: str, context: Any = None
    ) -> PermissionExplanation:
        """Get a detailed explanation of a permission decision."""
        _, explanation = self._evaluate(identity, permission, context, include_explanation=True)
        return explanation

    def _evaluate(
        self,
        identity: Identity,
        permission: str,
        context: Any,
        *,
        include_explanation: bool,
    ) -> tuple[bool, Optional[PermissionExplanation]]:
        """Core permission evaluation logic."""
        explanation = None
        if include_explanation:
            explanation = PermissionExplanation(permission=permission, allowed=False)

        held_roles = list(identity.get_roles())
        if explanation:
            explanation.identity_roles = held_roles
        if not held_roles:
            if explanation:
                explanation.reason = "no_roles"
            return False, explanation

        effective_roles = self.expand_roles(held_roles)
        granting_roles = self.permissions.granting_roles(permission)
        if explanation:
            explanation.effective_roles = set(effective_roles)
            explanation.granting_roles = set(granting_roles)

        if effective_roles.isdisjoint(granting_roles):
            if explanation:
                explanation.reason = "permission_missing"
            return False, explanation

        assertion = self.assertions.get(permission)
        if assertion is None:
            if explanation:
                explanation.allowed = True
                explanation.reason = "permission_granted"
            return True, explanation

        if explanation:
            explanation.assertion_checked = True
        try:
            allowed = bool(assertion(identity, context))
        except Exception as exc:
            logger.warning("Assertion for '%s' failed: %s", permission, exc)
            if explanation:
                explanation.assertion_allowed = False
                explanation.reason = "assertion_error"
            return False, explanation

        if explanation:
            explanation.allowed = allowed
            explanation.assertion_allowed = allowed
            explanation.reason = "permission_granted" if allowed else "assertion_denied"
        return allowed, explanation


__all__ = ["AuthorizationResolver"]
