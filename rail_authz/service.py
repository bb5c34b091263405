"""
AuthorizationService - the single entry point for authorization checks.

Application code asks the service whether an identity is granted a
permission (optionally against a context object), and pre-dispatch code asks
it for a guard verdict on a route or controller action.
"""

import logging
import threading
from typing import Any, Iterable, Optional, Sequence

from .aggregate import PermissionProviderAggregate
from .assertions import Assertion, AssertionRegistry
from .cache import CachedPermissionAggregate, CachedRoleRegistry, CacheLayer
from .config_proxy import get_setting
from .guards import BaseGuard, GuardEvaluator, GuardVerdict, build_guards
from .identity import Identity, as_identity
from .providers import (
    AppRoleFilesProvider,
    CompositeRoleProvider,
    DjangoGroupProvider,
    InMemoryPermissionProvider,
    InMemoryRoleProvider,
    JsonFileProvider,
)
from .resolver import AuthorizationResolver
from .types import PermissionExplanation

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("rail_authz.audit")


class AuthorizationService:
    """
    Facade composing the resolver, the guards and the cache layer.

    ``roles`` and ``permissions`` are the (possibly cached) role graph and
    grant lookup; see ``from_providers`` for the usual construction.
    """

    def __init__(
        self,
        roles: Any,
        permissions: Any,
        *,
        assertions: Optional[AssertionRegistry] = None,
        guards: Iterable[BaseGuard] = (),
        cache: Optional[CacheLayer] = None,
        guest_role: Optional[str] = None,
        audit_denies: bool = True,
        audit_all: bool = False,
    ):
        self.resolver = AuthorizationResolver(roles, permissions, assertions)
        self.guard_evaluator = GuardEvaluator(guards)
        self.cache = cache
        self.guest_role = guest_role
        self._audit_denies = audit_denies
        self._audit_all = audit_all
        self._reload_lock = threading.Lock()

    # --- Construction ---

    @classmethod
    def from_providers(
        cls,
        role_provider: object,
        permission_providers: Sequence[object],
        *,
        cache: Optional[CacheLayer] = None,
        **kwargs: Any,
    ) -> "AuthorizationService":
        """Build a service over a role provider and ordered permission providers."""
        aggregate = PermissionProviderAggregate(permission_providers)
        return cls(
            CachedRoleRegistry(role_provider, cache),
            CachedPermissionAggregate(aggregate, cache),
            cache=cache,
            **kwargs,
        )

    @classmethod
    def from_settings(cls) -> "AuthorizationService":
        """Build a service from the ``RAIL_AUTHZ`` configuration."""
        role_providers: list[object] = [InMemoryRoleProvider.from_settings()]
        permission_providers: list[object] = [InMemoryPermissionProvider.from_settings()]

        for path in get_setting("authz_settings.role_files", []) or []:
            file_provider = JsonFileProvider(path)
            role_providers.append(file_provider)
            permission_providers.append(file_provider)

        if get_setting("authz_settings.load_app_role_files", False):
            app_provider = AppRoleFilesProvider()
            role_providers.append(app_provider)
            permission_providers.append(app_provider)

        if get_setting("authz_settings.use_django_groups", False):
            group_provider = DjangoGroupProvider()
            role_providers.append(group_provider)
            permission_providers.append(group_provider)

        guards = build_guards(
            get_setting("authz_settings.guards", {}),
            get_setting("authz_settings.protection_policy", "allow"),
        )

        return cls.from_providers(
            CompositeRoleProvider(role_providers),
            permission_providers,
            cache=CacheLayer.from_settings(),
            guards=guards,
            guest_role=get_setting("authz_settings.guest_role"),
            audit_denies=bool(get_setting("audit_settings.log_denies", True)),
            audit_all=bool(get_setting("audit_settings.log_all", False)),
        )

    # --- Accessors ---

    @property
    def roles(self) -> Any:
        return self.resolver.roles

    @property
    def permissions(self) -> Any:
        return self.resolver.permissions

    @property
    def assertions(self) -> AssertionRegistry:
        return self.resolver.assertions

    @property
    def guards(self) -> list[BaseGuard]:
        return list(self.guard_evaluator.guards)

    def identity_for(self, subject: Any) -> Identity:
        """Coerce a user, role list or identity; ``None`` is the guest."""
        return as_identity(subject, self.guest_role)

    # --- Decisions ---

    def is_granted(self, subject: Any, permission: str, context: Any = None) -> bool:
        """Check if an identity is granted ``permission``, optionally against ``context``."""
        identity = self.identity_for(subject)
        if not (self._audit_all or self._audit_denies):
            return self.resolver.is_granted(identity, permission, context)

        explanation = self.resolver.explain(identity, permission, context)
        self._audit_permission_decision(explanation)
        return explanation.allowed

    def explain(self, subject: Any, permission: str, context: Any = None) -> PermissionExplanation:
        """Get a detailed explanation of a permission decision."""
        return self.resolver.explain(self.identity_for(subject), permission, context)

    def effective_roles(self, subject: Any) -> frozenset[str]:
        return self.resolver.effective_roles(self.identity_for(subject))

    def has_role(self, subject: Any, role: str) -> bool:
        """Check if an identity holds ``role`` directly or through the hierarchy."""
        return role in self.effective_roles(subject)

    def check_guards(self, identifier: str, subject: Any) -> GuardVerdict:
        """Evaluate every configured guard for ``identifier``."""
        verdict = self.guard_evaluator.evaluate(identifier, self.identity_for(subject), self.resolver)
        if not verdict.allowed and (self._audit_denies or self._audit_all):
            audit_logger.info(
                "Guard denied: identifier=%s guard=%s rule=%s reason=%s",
                identifier,
                verdict.guard,
                verdict.rule_id,
                verdict.reason,
            )
        elif verdict.allowed and self._audit_all:
            audit_logger.info("Guard allowed: identifier=%s reason=%s", identifier, verdict.reason)
        return verdict

    def register_assertion(self, permission: str, assertion: Assertion) -> None:
        self.assertions.register(permission, assertion)

    # --- Lifecycle ---

    def warm(self) -> None:
        """Load the role graph and the grants now instead of on first use."""
        snapshot = getattr(self.roles, "snapshot", None)
        if callable(snapshot):
            snapshot()
        load_grants = getattr(self.permissions, "load_grants", None)
        if callable(load_grants):
            load_grants()

    def reload(self) -> None:
        """Invalidate cached graphs and grants; the next check loads them again."""
        with self._reload_lock:
            for source in (self.roles, self.permissions):
                invalidate = getattr(source, "invalidate", None)
                if callable(invalidate):
                    invalidate()
            if self.cache is not None:
                self.cache.invalidate()
        logger.info("Authorization service reloaded")

    def _audit_permission_decision(self, explanation: PermissionExplanation) -> None:
        if explanation.allowed and not self._audit_all:
            return
        audit_logger.info(
            "Permission %s: permission=%s reason=%s roles=%s",
            "granted" if explanation.allowed else "denied",
            explanation.permission,
            explanation.reason,
            sorted(explanation.identity_roles),
        )


# Global instance, built from settings on first use
_service_instance: Optional[AuthorizationService] = None
_service_lock = threading.Lock()


def get_authorization_service() -> AuthorizationService:
    """Get or create the global AuthorizationService instance."""
    global _service_instance
    service = _service_instance
    if service is None:
        with _service_lock:
            if _service_instance is None:
                _service_instance = AuthorizationService.from_settings()
            service = _service_instance
    return service


def reset_authorization_service() -> None:
    """Drop the global instance; the next call to get_authorization_service rebuilds it."""
    global _service_instance
    with _service_lock:
        _service_instance = None


__all__ = [
    "AuthorizationService",
    "get_authorization_service",
    "reset_authorization_service",
]
