"""
Role-based authorization engine for Django projects.

This package provides:
- Role hierarchies with cycle detection and transitive resolution
- Pluggable role and permission providers (settings, roles.json, auth groups)
- Permission decisions with per-permission assertions
- Route and controller guards evaluated before dispatch
- A cache layer over Django's cache framework with wholesale invalidation

Quick Start:
    >>> from rail_authz import get_authorization_service
    >>>
    >>> authz = get_authorization_service()
    >>> if authz.is_granted(request.user, "post.delete", post):
    ...     post.delete()
    >>>
    >>> verdict = authz.check_guards("admin/users", request.user)
    >>> verdict.allowed, verdict.rule_id
"""

from .aggregate import PermissionProviderAggregate
from .assertions import AssertionRegistry
from .cache import (
    CachedPermissionAggregate,
    CachedRoleRegistry,
    CacheLayer,
    DjangoCacheBackend,
    InMemoryCacheBackend,
)
from .decorators import require_guards, require_permission, require_role
from .defaults import LIBRARY_VERSION as __version__
from .exceptions import (
    AuthorizationDeniedError,
    AuthorizationError,
    CacheUnavailableError,
    CycleError,
    DuplicateError,
    DuplicateRoleError,
    GuardConfigurationError,
    ProviderLoadError,
    RoleRegistryError,
    UnknownRoleError,
)
from .guards import (
    ControllerGuard,
    GuardEvaluator,
    GuardRule,
    GuardVerdict,
    RouteGuard,
    RoutePermissionsGuard,
    build_guards,
)
from .identity import DjangoUserIdentity, Identity, StaticIdentity, as_identity
from .registry import ResolvedRoleGraph, RoleRegistry
from .resolver import AuthorizationResolver
from .service import (
    AuthorizationService,
    get_authorization_service,
    reset_authorization_service,
)
from .types import PermissionExplanation, RoleDefinition

__all__ = [
    "__version__",
    # Types
    "RoleDefinition",
    "PermissionExplanation",
    # Roles and grants
    "RoleRegistry",
    "ResolvedRoleGraph",
    "PermissionProviderAggregate",
    "AssertionRegistry",
    # Identities
    "Identity",
    "StaticIdentity",
    "DjangoUserIdentity",
    "as_identity",
    # Cache
    "CacheLayer",
    "CachedRoleRegistry",
    "CachedPermissionAggregate",
    "InMemoryCacheBackend",
    "DjangoCacheBackend",
    # Decisions
    "AuthorizationResolver",
    "AuthorizationService",
    "get_authorization_service",
    "reset_authorization_service",
    # Guards
    "GuardRule",
    "GuardVerdict",
    "RouteGuard",
    "RoutePermissionsGuard",
    "ControllerGuard",
    "GuardEvaluator",
    "build_guards",
    # Decorators
    "require_role",
    "require_permission",
    "require_guards",
    # Errors
    "AuthorizationError",
    "RoleRegistryError",
    "CycleError",
    "DuplicateRoleError",
    "DuplicateError",
    "UnknownRoleError",
    "ProviderLoadError",
    "CacheUnavailableError",
    "GuardConfigurationError",
    "AuthorizationDeniedError",
]
