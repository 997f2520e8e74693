"""Snapshot of permission check statistics."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PermissionStatistics:
    """Point-in-time copy of the engine's counters.

    Attributes:
        total_checks: Access checks performed.
        successful_checks: Checks that allowed access.
        failed_checks: Checks that denied access (including errors).
        cache_hits: Cache lookups that found a value.
        cache_misses: Cache lookups that did not.
        active_rules_count: Active permission rules in the store.
        temporary_permissions_count: Active temporary permissions in the store.
        min_check_ms: Fastest check in milliseconds.
        max_check_ms: Slowest check in milliseconds.
        average_check_ms: Running average check time in milliseconds.
    """

    total_checks: int = 0
    successful_checks: int = 0
    failed_checks: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    active_rules_count: int = 0
    temporary_permissions_count: int = 0
    min_check_ms: float = 0.0
    max_check_ms: float = 0.0
    average_check_ms: float = 0.0

    @property
    def cache_hit_ratio(self) -> float:
        lookups = self.cache_hits + self.cache_misses
        return self.cache_hits / lookups if lookups else 0.0
