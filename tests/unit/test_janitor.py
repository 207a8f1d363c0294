"""Unit tests for CacheJanitor and SweepScheduler."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from ipguard.core.cache import CacheJanitor, TtlCache
from ipguard.services.sweep_scheduler import THREAD_NAME, SweepScheduler


class TestCacheJanitor:
    """Sweeping both caches."""

    def test_run_sweeps_every_cache(self, clock):
        counts = TtlCache(300, clock=clock, name="ip_restriction")
        verdicts = TtlCache(1800, clock=clock, name="vpn")
        counts.put("1.2.3.4", 1)
        verdicts.put("1.2.3.4", True)
        janitor = CacheJanitor(counts, verdicts)

        clock.advance(301)
        assert janitor.run() == 1
        assert len(counts) == 0
        assert len(verdicts) == 1

        clock.advance(1500)
        assert janitor.run() == 1
        assert len(verdicts) == 0

    def test_run_with_nothing_expired(self, clock):
        cache = TtlCache(300, clock=clock)
        cache.put("k", 1)
        assert CacheJanitor(cache).run() == 0
        assert len(cache) == 1

    def test_run_concurrent_with_lookups(self, clock):
        """Readers see either the value or a miss while sweeping."""
        cache = TtlCache(300, clock=clock)
        for i in range(200):
            cache.put(f"10.0.{i // 256}.{i % 256}", i)
        janitor = CacheJanitor(cache)
        clock.advance(301)
        seen = []

        def reader():
            for i in range(200):
                seen.append(cache.get(f"10.0.{i // 256}.{i % 256}"))

        t = threading.Thread(target=reader)
        t.start()
        janitor.run()
        t.join(timeout=5)

        assert all(v is None for v in seen)
        assert len(cache) == 0

    def test_caches_property(self):
        a, b = TtlCache(1), TtlCache(2)
        assert CacheJanitor(a, b).caches == (a, b)


class TestSweepScheduler:
    """Background sweep thread."""

    def _wait_for(self, predicate, timeout=2.0):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.01)
        return False

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            SweepScheduler(MagicMock(), interval_seconds=0)

    def test_start_runs_janitor_and_stop(self):
        janitor = MagicMock()
        janitor.run.return_value = 0
        scheduler = SweepScheduler(janitor, interval_seconds=0.01)

        assert scheduler.start() is True
        try:
            assert scheduler.is_running is True
            assert self._wait_for(lambda: janitor.run.call_count >= 2)
        finally:
            scheduler.stop()

        assert scheduler.is_running is False

    def test_start_twice_returns_false(self):
        scheduler = SweepScheduler(MagicMock(), interval_seconds=10)
        try:
            assert scheduler.start() is True
            assert scheduler.start() is False
        finally:
            scheduler.stop()

    def test_thread_is_named(self):
        scheduler = SweepScheduler(MagicMock(), interval_seconds=10)
        scheduler.start()
        try:
            names = [t.name for t in threading.enumerate()]
            assert THREAD_NAME in names
        finally:
            scheduler.stop()

    def test_failing_sweep_does_not_stop_loop(self):
        calls = []

        def run():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return 0

        janitor = MagicMock()
        janitor.run.side_effect = run
        scheduler = SweepScheduler(janitor, interval_seconds=0.01)
        scheduler.start()
        try:
            assert self._wait_for(lambda: janitor.run.call_count >= 3)
            assert scheduler.is_running is True
        finally:
            scheduler.stop()

    def test_stop_without_start(self):
        SweepScheduler(MagicMock(), interval_seconds=1).stop()
