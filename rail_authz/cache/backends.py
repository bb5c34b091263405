"""
Cache backends for the authorization cache layer.

A backend exposes ``get(key)`` (None when absent), ``set(key, value, ttl)``
and ``clear(key)``, and raises ``CacheUnavailableError`` when its store
cannot be reached.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

from ..exceptions import CacheUnavailableError


@runtime_checkable
class CacheBackend(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None: ...

    def clear(self, key: str) -> None: ...


@dataclass
class CacheEntry:
    """Cache entry with TTL tracking."""

    value: Any
    expires_at: Optional[float] = None

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and time.monotonic() >= self.expires_at


class InMemoryCacheBackend:
    """
    Process-local cache with per-entry expiry.

    Values are stored as-is (no serialization), so cached frozensets are shared
    between readers.
    """

    def __init__(self):
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired:
            with self._lock:
                if self._entries.get(key) is entry:
                    del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = time.monotonic() + ttl if ttl else None
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

    def clear(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class DjangoCacheBackend:
    """Backend delegating to a configured Django cache alias (locmem, redis, ...)."""

    def __init__(self, alias: str = "default"):
        self.alias = alias

    @property
    def cache(self):
        from django.core.cache import caches

        return caches[self.alias]

    def get(self, key: str) -> Optional[Any]:
        try:
            return self.cache.get(key)
        except Exception as exc:
            raise CacheUnavailableError(
                f"Cache '{self.alias}' unavailable on get: {exc}", key=key
            ) from exc

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            self.cache.set(key, value, timeout=ttl)
        except Exception as exc:
            raise CacheUnavailableError(
                f"Cache '{self.alias}' unavailable on set: {exc}", key=key
            ) from exc

    def clear(self, key: str) -> None:
        try:
            self.cache.delete(key)
        except Exception as exc:
            raise CacheUnavailableError(
                f"Cache '{self.alias}' unavailable on clear: {exc}", key=key
            ) from exc

    def __repr__(self) -> str:
        return f"DjangoCacheBackend(alias={self.alias!r})"


__all__ = ["CacheBackend", "CacheEntry", "InMemoryCacheBackend", "DjangoCacheBackend"]
