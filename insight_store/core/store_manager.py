"""
Builds the storage components over a shared substrate and coordinates maintenance.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from insight_store.models.config import StoreConfig
from insight_store.models.records import utc_now
from insight_store.models.stats import MaintenanceReport
from insight_store.services.system_log import IssueBook, SystemLogBook
from insight_store.storage.cache import ExpiringCache
from insight_store.storage.query_tracker import PopularityTracker
from insight_store.storage.substrate import KeyValueSubstrate
from insight_store.storage.vault import ArtifactVault
from insight_store.utils.structured_logger import VaultEventLogger

log = logging.getLogger(__name__)


class StoreManager:
    """Owns one instance of every storage component for a single profile."""

    def __init__(
        self,
        config: StoreConfig,
        substrate: KeyValueSubstrate,
        clock: Callable[[], datetime] = utc_now,
        events: VaultEventLogger | None = None,
    ):
        self.config = config
        self.substrate = substrate

        self.api_cache = ExpiringCache(substrate, "api", clock=clock)
        self.velocity_cache = ExpiringCache(substrate, "velocity", clock=clock)
        self.system_cache = ExpiringCache(substrate, "system", clock=clock)
        self.queries = PopularityTracker(
            substrate,
            max_queries=config.max_queries,
            prune_threshold_days=config.prune_threshold_days,
            clock=clock,
        )
        self.vault = ArtifactVault(substrate, config, clock=clock, events=events)
        self.system_log = SystemLogBook(
            self.system_cache, limit=config.system_log_limit, clock=clock
        )
        self.issues = IssueBook(self.system_cache, self.system_log, clock=clock)

    @property
    def default_max_age(self) -> timedelta:
        return self.config.default_max_age

    @property
    def caches(self) -> dict[str, ExpiringCache]:
        return {
            cache.namespace: cache
            for cache in (self.api_cache, self.velocity_cache, self.system_cache)
        }

    def run_maintenance(self) -> MaintenanceReport:
        """
        Prunes the query store and purges expired artifacts. Idempotent, so views
        may call it on every load.
        """
        report = MaintenanceReport(
            queries_pruned=self.queries.prune(),
            artifacts_purged=self.vault.purge_expired(),
        )
        if report.changed:
            log.debug(
                f"Maintenance: {report.queries_pruned} queries pruned, "
                f"{report.artifacts_purged} artifacts purged."
            )
        return report
