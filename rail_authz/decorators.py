"""
Enforcement decorators for service-layer functions.

This module provides decorators for enforcing role and permission requirements
on plain functions and methods, e.g. a domain service deleting a post.
"""

from functools import wraps
from typing import Any, Callable, Optional, Union

from .exceptions import AuthorizationDeniedError
from .guards import GUARD_TYPES
from .identity import Identity, _is_django_user


def _get_service(service: Any):
    """Lazy lookup so the global service is only built when first needed."""
    if service is not None:
        return service
    from .service import get_authorization_service

    return get_authorization_service()


def _extract_identity(args: tuple, kwargs: dict) -> Any:
    """Find the identity among the call arguments."""
    for key in ("identity", "user"):
        if key in kwargs:
            return kwargs[key]
    for arg in args:
        if isinstance(arg, Identity) or _is_django_user(arg):
            return arg
    return None


def require_role(
    required_roles: Union[str, list[str]],
    service: Any = None,
    identity_func: Optional[Callable[..., Any]] = None,
):
    """
    Decorator to require at least one of the given roles (hierarchy included).

    Args:
        required_roles: Single role name or list of role names.
        service: AuthorizationService to use; defaults to the global one.
        identity_func: Optional callable extracting the identity from the call.

    Raises:
        AuthorizationDeniedError: If the identity holds none of the roles.
    """
    if isinstance(required_roles, str):
        required_roles = [required_roles]

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            subject = (
                identity_func(*args, **kwargs)
                if identity_func
                else _extract_identity(args, kwargs)
            )
            authz = _get_service(service)
            effective_roles = authz.effective_roles(subject)
            if not any(role in effective_roles for role in required_roles):
                raise AuthorizationDeniedError(
                    f"Required roles: {', '.join(required_roles)}",
                    roles=required_roles,
                )
            return func(*args, **kwargs)

        return wrapper

    return decorator


def require_permission(
    permission: str,
    context_func: Optional[Callable[..., Any]] = None,
    service: Any = None,
    identity_func: Optional[Callable[..., Any]] = None,
):
    """
    Decorator to require a permission.

    Args:
        permission: The permission to require (e.g., "post.delete").
        context_func: Optional callable building the assertion context from
            the call arguments.
        service: AuthorizationService to use; defaults to the global one.
        identity_func: Optional callable extracting the identity from the call.

    Raises:
        AuthorizationDeniedError: If the identity is not granted the permission.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            subject = (
                identity_func(*args, **kwargs)
                if identity_func
                else _extract_identity(args, kwargs)
            )
            context = context_func(*args, **kwargs) if context_func else None
            authz = _get_service(service)
            if not authz.is_granted(subject, permission, context):
                raise AuthorizationDeniedError(
                    f"Permission required: {permission}",
                    permission=permission,
                )
            return func(*args, **kwargs)

        return wrapper

    return decorator


def require_guards(identifier: str, service: Any = None, identity_func: Optional[Callable[..., Any]] = None):
    """
    Decorator running the configured guards for ``identifier`` before the call.

    Raises:
        AuthorizationDeniedError: If any guard denies; the verdict is attached.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            subject = (
                identity_func(*args, **kwargs)
                if identity_func
                else _extract_identity(args, kwargs)
            )
            verdict = _get_service(service).check_guards(identifier, subject)
            if not verdict.allowed:
                missing = sorted(verdict.missing)
                guard_class = GUARD_TYPES.get(verdict.guard)
                on_permissions = guard_class is not None and guard_class.requirement_key == "permissions"
                raise AuthorizationDeniedError(
                    f"Access to '{identifier}' denied by {verdict.guard} guard",
                    roles=[] if on_permissions else missing,
                    permissions=missing if on_permissions else None,
                    verdict=verdict,
                )
            return func(*args, **kwargs)

        return wrapper

    return decorator


__all__ = ["require_role", "require_permission", "require_guards"]
