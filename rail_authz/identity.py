"""
Identity adapters.

The engine only needs to read the roles an identity holds. Anything with a
``get_roles()`` method is an identity; Django users and plain role iterables
are adapted.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Optional, Protocol, runtime_checkable

from .config_proxy import get_setting

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractUser

_UNSET = object()


@runtime_checkable
class Identity(Protocol):
    def get_roles(self) -> Iterable[str]: ...


@dataclass(frozen=True)
class StaticIdentity:
    """Identity with a fixed set of roles."""

    roles: frozenset[str] = field(default_factory=frozenset)
    identifier: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.roles, str):
            object.__setattr__(self, "roles", frozenset([self.roles]))
        elif not isinstance(self.roles, frozenset):
            object.__setattr__(self, "roles", frozenset(self.roles))

    def get_roles(self) -> frozenset[str]:
        return self.roles


class DjangoUserIdentity:
    """
    Identity backed by a Django user.

    Roles are the names of the user's groups, plus the configured superuser
    and staff roles when the corresponding flags are set. Unauthenticated
    users hold no roles.
    """

    def __init__(
        self,
        user: "AbstractUser",
        superuser_role: Any = _UNSET,
        staff_role: Any = _UNSET,
    ):
        self.user = user
        if superuser_role is _UNSET:
            superuser_role = get_setting("authz_settings.superuser_role")
        if staff_role is _UNSET:
            staff_role = get_setting("authz_settings.staff_role")
        self.superuser_role = superuser_role
        self.staff_role = staff_role

    def get_roles(self) -> list[str]:
        user = self.user
        if not user or not getattr(user, "is_authenticated", False):
            return []
        if getattr(user, "pk", None) is None:
            return []
        roles = list(user.groups.values_list("name", flat=True))
        if getattr(user, "is_superuser", False) and self.superuser_role:
            roles.append(self.superuser_role)
        if getattr(user, "is_staff", False) and self.staff_role:
            roles.append(self.staff_role)
        return roles

    def __repr__(self) -> str:
        return f"DjangoUserIdentity(user={getattr(self.user, 'pk', None)!r})"


def _is_django_user(subject: Any) -> bool:
    return hasattr(subject, "is_authenticated") and hasattr(subject, "groups")


def as_identity(subject: Any, guest_role: Optional[str] = None) -> Identity:
    """
    Coerce ``subject`` into an identity.

    ``None`` and unauthenticated Django users become a guest holding
    ``guest_role`` (or nothing when no guest role is configured).

    Raises:
        TypeError: If the subject cannot be read as an identity.
    """
    if subject is None:
        return StaticIdentity([guest_role] if guest_role else [])
    if isinstance(subject, Identity):
        return subject
    if _is_django_user(subject):
        if not getattr(subject, "is_authenticated", False):
            return StaticIdentity([guest_role] if guest_role else [])
        return DjangoUserIdentity(subject)
    if isinstance(subject, str):
        return StaticIdentity([subject])
    if isinstance(subject, (list, tuple, set, frozenset)):
        return StaticIdentity(subject)
    raise TypeError(f"Cannot read roles from {type(subject).__name__}")


__all__ = ["Identity", "StaticIdentity", "DjangoUserIdentity", "as_identity"]
