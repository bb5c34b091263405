"""
Get-or-compute cache layer for role graphs and permission grants.

Entries are only ever invalidated wholesale: a role graph or a grant map is
recomputed as a whole, never patched per role or per permission.
"""

import logging
import threading
from typing import Any, Callable, Optional

from django.core.exceptions import ImproperlyConfigured

from ..config_proxy import get_setting
from ..defaults import CACHE_BACKENDS
from ..exceptions import CacheUnavailableError
from ..registry import ResolvedRoleGraph, RoleRegistry
from .backends import CacheBackend, DjangoCacheBackend, InMemoryCacheBackend

logger = logging.getLogger(__name__)

_EMPTY: frozenset[str] = frozenset()


class CacheLayer:
    """
    Memoization over a pluggable cache backend.

    At most one computation runs per key at a time: concurrent misses wait for
    the in-flight computation and then read its result. When the backend is
    unavailable the value is computed directly (``bypass_on_error``) or the
    ``CacheUnavailableError`` is propagated.
    """

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        ttl: Optional[int] = None,
        key_prefix: str = "rail:authz",
        bypass_on_error: bool = True,
    ):
        self.backend = backend if backend is not None else InMemoryCacheBackend()
        self.ttl = ttl or None
        self.key_prefix = key_prefix
        self.bypass_on_error = bypass_on_error
        self.hits = 0
        self.misses = 0
        self._keys: set[str] = set()
        self._generation = 0
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @classmethod
    def from_settings(cls) -> Optional["CacheLayer"]:
        """Build the layer configured under ``cache_settings``; None when disabled."""
        if not get_setting("cache_settings.enabled", True):
            return None

        backend_name = get_setting("cache_settings.backend", "django")
        if backend_name == "memory":
            backend = InMemoryCacheBackend()
        elif backend_name == "django":
            backend = DjangoCacheBackend(get_setting("cache_settings.alias", "default"))
        else:
            raise ImproperlyConfigured(
                f"cache_settings.backend must be one of {CACHE_BACKENDS}, got {backend_name!r}"
            )

        return cls(
            backend=backend,
            ttl=get_setting("cache_settings.ttl_seconds", 300),
            key_prefix=get_setting("cache_settings.key_prefix", "rail:authz"),
            bypass_on_error=bool(get_setting("cache_settings.bypass_on_error", True)),
        )

    def make_key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    def get_or_compute(self, key: str, compute: Callable[[], Any]) -> Any:
        """Return the cached value for ``key``, computing and storing it on a miss."""
        full_key = self.make_key(key)
        self._keys.add(full_key)

        value = self._get(full_key)
        if value is not None:
            self.hits += 1
            return value

        with self._lock_for(full_key):
            value = self._get(full_key)
            if value is not None:
                self.hits += 1
                return value

            self.misses += 1
            generation = self._generation
            logger.debug("Cache miss for %s, computing", full_key)
            value = compute()
            if generation == self._generation:
                self._set(full_key, value)
            else:
                logger.debug("Cache invalidated while computing %s, not storing", full_key)
            return value

    def clear(self, key: str) -> None:
        """Drop a single whole entry (a full role graph or grant map)."""
        self._clear(self.make_key(key))

    def invalidate(self) -> None:
        """Drop every entry this layer has served."""
        self._generation += 1
        for full_key in sorted(self._keys):
            self._clear(full_key)
        logger.info("Authorization cache invalidated (%d keys)", len(self._keys))

    def stats(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "keys": sorted(self._keys),
            "generation": self._generation,
        }

    def _lock_for(self, full_key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(full_key)
            if lock is None:
                lock = self._locks[full_key] = threading.Lock()
            return lock

    def _get(self, full_key: str) -> Any:
        try:
            return self.backend.get(full_key)
        except CacheUnavailableError as exc:
            if not self.bypass_on_error:
                raise
            logger.warning("Cache unavailable, computing %s directly: %s", full_key, exc)
            return None

    def _set(self, full_key: str, value: Any) -> None:
        try:
            self.backend.set(full_key, value, self.ttl)
        except CacheUnavailableError as exc:
            if not self.bypass_on_error:
                raise
            logger.warning("Cache unavailable, %s not stored: %s", full_key, exc)

    def _clear(self, full_key: str) -> None:
        try:
            self.backend.clear(full_key)
        except CacheUnavailableError as exc:
            if not self.bypass_on_error:
                raise
            logger.warning("Cache unavailable, %s not cleared: %s", full_key, exc)


class CachedRoleRegistry:
    """
    Role graph built from a role provider, served through the cache layer.

    Without a cache layer a single snapshot is kept locally. Either way the
    graph is an immutable ``ResolvedRoleGraph`` built in one go.
    """

    def __init__(self, provider: object, cache: Optional[CacheLayer] = None):
        self.provider = provider
        self.cache = cache
        self.cache_key = "roles:" + str(getattr(provider, "cache_key", type(provider).__name__))
        self._snapshot: Optional[ResolvedRoleGraph] = None
        self._lock = threading.Lock()

    def _build(self) -> ResolvedRoleGraph:
        return RoleRegistry.from_provider(self.provider).snapshot()

    def snapshot(self) -> ResolvedRoleGraph:
        if self.cache is not None:
            return self.cache.get_or_compute(self.cache_key, self._build)

        snapshot = self._snapshot
        if snapshot is None:
            with self._lock:
                if self._snapshot is None:
                    self._snapshot = self._build()
                snapshot = self._snapshot
        return snapshot

    def resolve_ancestors(self, role_id: str) -> frozenset[str]:
        return self.snapshot().resolve_ancestors(role_id)

    def has_role(self, role_id: str) -> bool:
        return self.snapshot().has_role(role_id)

    def invalidate(self) -> None:
        with self._lock:
            self._snapshot = None
        if self.cache is not None:
            self.cache.clear(self.cache_key)


class CachedPermissionAggregate:
    """Permission aggregate whose merged grants are served through the cache layer."""

    def __init__(self, aggregate: object, cache: Optional[CacheLayer] = None):
        self.aggregate = aggregate
        self.cache = cache
        self.cache_key = aggregate.cache_key

    def load_grants(self) -> dict[str, frozenset[str]]:
        if self.cache is None:
            return self.aggregate.load_grants()
        return self.cache.get_or_compute(self.cache_key, self.aggregate.refresh)

    def has_permission(self, permission: str) -> bool:
        return permission in self.load_grants()

    def granting_roles(self, permission: str) -> frozenset[str]:
        return self.load_grants().get(permission, _EMPTY)

    def invalidate(self) -> None:
        self.aggregate.reset()
        if self.cache is not None:
            self.cache.clear(self.cache_key)


__all__ = ["CacheLayer", "CachedRoleRegistry", "CachedPermissionAggregate"]
