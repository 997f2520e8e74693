"""Tests for the permission statistics collector."""

import threading

import pytest

from datagate.domain.services.permission_statistics import PermissionStatisticsCollector


class TestPermissionStatisticsCollector:
    """Tests for PermissionStatisticsCollector."""

    def test_empty_snapshot(self):
        snapshot = PermissionStatisticsCollector().snapshot()
        assert snapshot.total_checks == 0
        assert snapshot.average_check_ms == 0.0
        assert snapshot.cache_hit_ratio == 0.0

    def test_counts_and_timings(self):
        collector = PermissionStatisticsCollector()
        collector.record_check(True, 2.0)
        collector.record_check(False, 6.0)
        collector.record_check(True, 4.0)

        snapshot = collector.snapshot(active_rules_count=3, temporary_permissions_count=1)

        assert snapshot.total_checks == 3
        assert snapshot.successful_checks == 2
        assert snapshot.failed_checks == 1
        assert snapshot.min_check_ms == 2.0
        assert snapshot.max_check_ms == 6.0
        assert snapshot.average_check_ms == pytest.approx(4.0)
        assert snapshot.active_rules_count == 3
        assert snapshot.temporary_permissions_count == 1

    def test_cache_counters(self):
        collector = PermissionStatisticsCollector()
        collector.record_cache_hit()
        collector.record_cache_hit()
        collector.record_cache_miss()
        snapshot = collector.snapshot()
        assert snapshot.cache_hits == 2
        assert snapshot.cache_misses == 1
        assert snapshot.cache_hit_ratio == pytest.approx(2 / 3)

    def test_reset(self):
        collector = PermissionStatisticsCollector()
        collector.record_check(True, 1.0)
        collector.reset()
        assert collector.snapshot().total_checks == 0

    def test_concurrent_updates_are_not_lost(self):
        collector = PermissionStatisticsCollector()
        threads_count = 8
        per_thread = 500

        def worker():
            for _ in range(per_thread):
                collector.record_check(True, 1.0)
                collector.record_cache_miss()

        threads = [threading.Thread(target=worker) for _ in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        snapshot = collector.snapshot()
        assert snapshot.total_checks == threads_count * per_thread
        assert snapshot.successful_checks + snapshot.failed_checks == snapshot.total_checks
        assert snapshot.cache_misses == threads_count * per_thread
        assert snapshot.average_check_ms == pytest.approx(1.0)
