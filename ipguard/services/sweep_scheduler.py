"""Fixed-interval scheduler for the cache janitor.

Runs ``CacheJanitor.run()`` on a daemon thread named
``service-cache-sweep``. A failing sweep is logged and the loop keeps
going.
"""

import logging
import threading
from typing import Optional

from ipguard.core.cache.janitor import CacheJanitor

logger = logging.getLogger(__name__)

THREAD_NAME = 'service-cache-sweep'


class SweepScheduler:
    """Background thread calling the janitor every ``interval_seconds``."""

    def __init__(self, janitor: CacheJanitor, interval_seconds: float):
        """Initialize the scheduler.

        Args:
            janitor: Janitor to run
            interval_seconds: Delay between two sweeps
        """
        if interval_seconds <= 0:
            raise ValueError('interval_seconds must be positive')
        self._janitor = janitor
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        """Check if the sweep thread is alive."""
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> bool:
        """Start the sweep thread.

        Returns:
            True if started, False if it was already running
        """
        with self._lock:
            if self.is_running:
                logger.debug(' Sweep scheduler already running')
                return False
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._loop,
                name=THREAD_NAME,
                daemon=True,
            )
            self._thread.start()

        logger.info(f' Sweep scheduler started (interval={self._interval}s)')
        return True

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the sweep thread and wait for it to exit."""
        with self._lock:
            thread = self._thread
            self._thread = None
            self._stop_event.set()

        if thread is not None:
            thread.join(timeout=timeout)
            logger.info(' Sweep scheduler stopped')

    def _loop(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self._janitor.run()
            except Exception as e:
                logger.error(f' Cache sweep failed (error={e})')
