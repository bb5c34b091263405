"""
Custom exceptions for the authorization engine.

Registry and provider faults are configuration errors: they are raised at
load time and never downgraded to an empty result. A missing role or
permission at decision time is not an error, it is a deny.
"""

from typing import Iterable, Optional


class AuthorizationError(Exception):
    """Base exception for rail-authz errors."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return self.message


class RoleRegistryError(AuthorizationError):
    """Base exception for role registry faults."""

    def __init__(self, message: str, role_id: Optional[str] = None, code: Optional[str] = None):
        self.role_id = role_id
        super().__init__(message, code=code)


class CycleError(RoleRegistryError):
    """Raised when registering a role would close a cycle in the hierarchy."""

    def __init__(self, role_id: str, path: Optional[Iterable[str]] = None):
        self.path = list(path or [role_id, role_id])
        super().__init__(
            f"Role '{role_id}' would create a cycle: {' -> '.join(self.path)}",
            role_id=role_id,
            code="ROLE_CYCLE",
        )


class DuplicateRoleError(RoleRegistryError):
    """Raised when a role identifier is registered twice."""

    def __init__(self, role_id: str):
        super().__init__(
            f"Role '{role_id}' is already registered",
            role_id=role_id,
            code="ROLE_DUPLICATE",
        )


DuplicateError = DuplicateRoleError


class UnknownRoleError(RoleRegistryError):
    """Raised when a role identifier is not present in the registry."""

    def __init__(self, role_id: str, referenced_by: Optional[str] = None):
        self.referenced_by = referenced_by
        if referenced_by:
            message = f"Role '{referenced_by}' references unknown parent role '{role_id}'"
        else:
            message = f"Unknown role '{role_id}'"
        super().__init__(message, role_id=role_id, code="ROLE_UNKNOWN")


class ProviderLoadError(AuthorizationError):
    """Raised when a role or permission provider fails to load."""

    def __init__(self, provider: object, cause: Optional[BaseException] = None):
        self.provider = provider
        self.cause = cause
        provider_name = getattr(provider, "cache_key", None) or type(provider).__name__
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Provider '{provider_name}' failed to load{detail}",
            code="PROVIDER_LOAD_FAILED",
        )


class CacheUnavailableError(AuthorizationError):
    """Raised by cache backends when the underlying store cannot be reached."""

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(message, code="CACHE_UNAVAILABLE")


class GuardConfigurationError(AuthorizationError):
    """Raised when a guard rule set cannot be built from configuration."""

    def __init__(self, message: str, guard: Optional[str] = None):
        self.guard = guard
        super().__init__(message, code="GUARD_CONFIGURATION")


class AuthorizationDeniedError(AuthorizationError):
    """Raised by the enforcement decorators when access is refused."""

    def __init__(
        self,
        message: str,
        permission: Optional[str] = None,
        roles: Optional[Iterable[str]] = None,
        verdict: Optional[object] = None,
        permissions: Optional[Iterable[str]] = None,
    ):
        self.permission = permission
        self.roles = list(roles or [])
        self.permissions = list(permissions or ([permission] if permission else []))
        self.verdict = verdict
        super().__init__(message, code="ACCESS_DENIED")


__all__ = [
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
