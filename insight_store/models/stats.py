"""
Dataclasses for tracking cache statistics and vault capacity usage.
"""

from dataclasses import dataclass


@dataclass
class CacheStats:
    """Tracks hit/miss statistics for one expiring cache."""

    hits: int = 0
    misses: int = 0
    stale: int = 0
    write_failures: int = 0

    def record_lookup(self, hit: bool, stale: bool = False) -> None:
        """Updates counters for a single `get` call."""
        if hit:
            self.hits += 1
            return
        self.misses += 1
        if stale:
            self.stale += 1

    @property
    def lookups(self) -> int:
        return self.hits + self.misses

    @property
    def hit_ratio(self) -> float:
        """Fraction of lookups served from the cache (0.0 when unused)."""
        if not self.lookups:
            return 0.0
        return self.hits / self.lookups


@dataclass(frozen=True)
class VaultUsage:
    """
    Snapshot of how full the vault is. `is_near_capacity` is advisory only; the
    vault enforces nothing at the warning threshold.
    """

    active: int
    trashed: int
    max_capacity: int
    warning_threshold: int

    @property
    def is_near_capacity(self) -> bool:
        return self.active >= self.warning_threshold

    @property
    def is_full(self) -> bool:
        return self.active >= self.max_capacity

    @property
    def remaining(self) -> int:
        return max(self.max_capacity - self.active, 0)

    @property
    def percent_used(self) -> float:
        return round(self.active / self.max_capacity * 100, 1)


@dataclass(frozen=True)
class MaintenanceReport:
    """What a single maintenance pass removed."""

    queries_pruned: int = 0
    artifacts_purged: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.queries_pruned or self.artifacts_purged)
