"""Periodic cleanup of expired cache entries.

The janitor does not schedule itself; an external scheduler calls
``run()`` at a fixed interval (see ``ipguard.services.sweep_scheduler``).
"""

from __future__ import annotations

import logging

from ipguard.core.cache.ttl_cache import TtlCache

logger = logging.getLogger(__name__)


class CacheJanitor:
    """Sweeps a fixed set of TTL caches."""

    def __init__(self, *caches: TtlCache) -> None:
        self._caches = caches

    @property
    def caches(self) -> tuple[TtlCache, ...]:
        return self._caches

    def run(self) -> int:
        """Sweep every cache once.

        Returns:
            Total number of expired entries removed
        """
        removed = 0
        for cache in self._caches:
            removed += cache.sweep()
        if removed:
            logger.info(f"Expired cache entries removed (count={removed})")
        else:
            logger.debug("Cache sweep complete (count=0)")
        return removed
