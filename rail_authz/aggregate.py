"""
Permission provider aggregate.

Composes any number of permission providers into one permission -> granting
roles lookup. Role sets for the same permission are unioned, so the result
does not depend on provider order.
"""

import logging
import threading
from typing import Iterable, Mapping, Optional, Sequence

from .exceptions import AuthorizationError, ProviderLoadError
from .providers.base import PermissionProvider, stable_digest

logger = logging.getLogger(__name__)

_EMPTY: frozenset[str] = frozenset()


class PermissionProviderAggregate:
    """
    Merged view over an ordered list of permission providers.

    Loading happens on first use and only once; a failing provider fails the
    whole load with ``ProviderLoadError`` and nothing partial is kept.
    """

    def __init__(self, providers: Sequence[PermissionProvider]):
        self._providers = list(providers)
        self._grants: Optional[dict[str, frozenset[str]]] = None
        self._lock = threading.Lock()
        self.cache_key = "permissions:" + stable_digest(
            [getattr(provider, "cache_key", type(provider).__name__) for provider in self._providers]
        )

    @property
    def providers(self) -> list[PermissionProvider]:
        return list(self._providers)

    @property
    def is_loaded(self) -> bool:
        return self._grants is not None

    def load_grants(self) -> dict[str, frozenset[str]]:
        """Return the merged grants, loading them on first use."""
        grants = self._grants
        if grants is not None:
            return grants
        with self._lock:
            if self._grants is None:
                self._grants = self._load()
            return self._grants

    def refresh(self) -> dict[str, frozenset[str]]:
        """Load all providers again and replace the merged grants."""
        with self._lock:
            self._grants = self._load()
            return self._grants

    def reset(self) -> None:
        """Drop the merged grants; the next lookup loads again."""
        with self._lock:
            self._grants = None

    def has_permission(self, permission: str) -> bool:
        return permission in self.load_grants()

    def granting_roles(self, permission: str) -> frozenset[str]:
        """Roles directly granted ``permission``; empty for unknown permissions."""
        return self.load_grants().get(permission, _EMPTY)

    def _load(self) -> dict[str, frozenset[str]]:
        merged: dict[str, set[str]] = {}
        for provider in self._providers:
            try:
                grants = provider.load_grants()
            except AuthorizationError:
                raise
            except Exception as exc:
                raise ProviderLoadError(provider, exc) from exc
            _merge_grants(merged, grants)

        logger.info(
            "Loaded %d permissions from %d provider(s)", len(merged), len(self._providers)
        )
        return {permission: frozenset(roles) for permission, roles in merged.items()}

    def __repr__(self) -> str:
        return f"PermissionProviderAggregate(providers={self._providers!r})"


def _merge_grants(merged: dict[str, set[str]], grants: Mapping[str, Iterable[str]]) -> None:
    for permission, roles in grants.items():
        if isinstance(roles, str):
            roles = [roles]
        merged.setdefault(str(permission), set()).update(str(role) for role in roles or ())


__all__ = ["PermissionProviderAggregate"]
