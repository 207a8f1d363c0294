"""Caching primitives for IPGUARD."""

from ipguard.core.cache.ttl_cache import CacheEntry, TtlCache
from ipguard.core.cache.janitor import CacheJanitor

__all__ = [
    "CacheEntry",
    "TtlCache",
    "CacheJanitor",
]
