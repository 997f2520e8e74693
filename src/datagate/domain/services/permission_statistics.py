"""Statistics collector for permission checks.

All counters are updated under one lock, so concurrent checks never lose an
update to the running average.
"""

import threading

from datagate.domain.entities.permission_statistics import PermissionStatistics


class PermissionStatisticsCollector:
    """Serialising accumulator for check counts, cache usage and latency."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reset()

    def _reset(self) -> None:
        self._total_checks = 0
        self._successful_checks = 0
        self._failed_checks = 0
        self._cache_hits = 0
        self._cache_misses = 0
        self._min_check_ms = 0.0
        self._max_check_ms = 0.0
        self._average_check_ms = 0.0

    def record_check(self, allowed: bool, elapsed_ms: float) -> None:
        """Record one completed (or abandoned) check.

        Args:
            allowed: Whether the check allowed access.
            elapsed_ms: Wall time spent on the check.
        """
        with self._lock:
            self._total_checks += 1
            if allowed:
                self._successful_checks += 1
            else:
                self._failed_checks += 1

            n = self._total_checks
            if n == 1:
                self._min_check_ms = elapsed_ms
                self._max_check_ms = elapsed_ms
            else:
                self._min_check_ms = min(self._min_check_ms, elapsed_ms)
                self._max_check_ms = max(self._max_check_ms, elapsed_ms)
            self._average_check_ms = (self._average_check_ms * (n - 1) + elapsed_ms) / n

    def record_cache_hit(self) -> None:
        with self._lock:
            self._cache_hits += 1

    def record_cache_miss(self) -> None:
        with self._lock:
            self._cache_misses += 1

    def snapshot(
        self, active_rules_count: int = 0, temporary_permissions_count: int = 0
    ) -> PermissionStatistics:
        """Copy the counters into an immutable snapshot.

        Args:
            active_rules_count: Current number of effective rules in the store.
            temporary_permissions_count: Current number of valid temporary permissions.
        """
        with self._lock:
            return PermissionStatistics(
                total_checks=self._total_checks,
                successful_checks=self._successful_checks,
                failed_checks=self._failed_checks,
                cache_hits=self._cache_hits,
                cache_misses=self._cache_misses,
                active_rules_count=active_rules_count,
                temporary_permissions_count=temporary_permissions_count,
                min_check_ms=self._min_check_ms,
                max_check_ms=self._max_check_ms,
                average_check_ms=self._average_check_ms,
            )

    def reset(self) -> None:
        with self._lock:
            self._reset()
