"""
Cache layer for role graphs and permission grants.

Exports:
    - CacheBackend: backend protocol (get / set / clear)
    - InMemoryCacheBackend: process-local backend with TTL
    - DjangoCacheBackend: backend over a Django cache alias
    - CacheLayer: get-or-compute with single in-flight computation per key
    - CachedRoleRegistry / CachedPermissionAggregate: cached lookups
"""

from .backends import CacheBackend, CacheEntry, DjangoCacheBackend, InMemoryCacheBackend
from .layer import CachedPermissionAggregate, CachedRoleRegistry, CacheLayer

__all__ = [
    "CacheBackend",
    "CacheEntry",
    "InMemoryCacheBackend",
    "DjangoCacheBackend",
    "CacheLayer",
    "CachedRoleRegistry",
    "CachedPermissionAggregate",
]
