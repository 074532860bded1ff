"""
Tracks how often dashboard queries are issued so the UI can suggest popular ones.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from pydantic import TypeAdapter

from insight_store.exceptions import StorageReadCorruption, StorageWriteError
from insight_store.models.records import QueryRecord, SearchMode, utc_now

from . import codec
from .substrate import KeyValueSubstrate

log = logging.getLogger(__name__)

QUERY_STORE_KEY = "queries"

_STORE_ADAPTER = TypeAdapter(dict[str, QueryRecord])


def normalize_query(query: str) -> str:
    """Trims and case-folds a query so 'Camp', 'camp ' and ' CAMP' share a record."""
    return query.strip().casefold()


class PopularityTracker:
    """
    Records free-text queries with frequency and recency, persisted as a single
    collection keyed by normalized query.

    Eviction runs in two passes: records not accessed within the prune threshold
    are dropped first, then the least popular records go until the store is back
    at `max_queries`.
    """

    def __init__(
        self,
        substrate: KeyValueSubstrate,
        max_queries: int,
        prune_threshold_days: int,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._substrate = substrate
        self.max_queries = max_queries
        self.prune_threshold = timedelta(days=prune_threshold_days)
        self._clock = clock

    def _load(self) -> dict[str, QueryRecord]:
        try:
            return codec.load(self._substrate, QUERY_STORE_KEY, _STORE_ADAPTER) or {}
        except StorageReadCorruption as e:
            log.warning(f"Resetting corrupted query store: {e}")
            self._substrate.remove(QUERY_STORE_KEY)
            return {}

    def _save(self, store: dict[str, QueryRecord]) -> bool:
        try:
            codec.dump(self._substrate, QUERY_STORE_KEY, _STORE_ADAPTER, store)
            return True
        except StorageWriteError as e:
            log.error(f"Failed to save query store: {e}")
            return False

    def record(self, query: str, mode: SearchMode = SearchMode.KEYWORD) -> bool:
        """
        Counts one use of `query`. Blank input is ignored.

        Returns False only when the updated store could not be written.
        """
        key = normalize_query(query or "")
        if not key:
            return True

        store = self._load()
        now = self._clock()
        existing = store.get(key)
        if existing:
            existing.hit_count += 1
            existing.last_accessed = now
        else:
            store[key] = QueryRecord(query=key, hit_count=1, last_accessed=now, mode=mode)
        return self._save(store)

    def get(self, query: str) -> QueryRecord | None:
        return self._load().get(normalize_query(query or ""))

    def top(self, n: int) -> list[QueryRecord]:
        """
        Returns up to `n` records, most used first. Equal counts are ordered by the
        normalized query, alphabetically.
        """
        if n <= 0:
            return []
        records = sorted(self._load().values(), key=lambda r: (-r.hit_count, r.query))
        return records[:n]

    def prune(self) -> int:
        """
        Applies the age pass, then the capacity pass on what is left. Safe to call
        on every read. Returns the number of records removed.
        """
        store = self._load()
        if not store:
            return 0

        now = self._clock()
        before = len(store)
        store = {
            key: record
            for key, record in store.items()
            if now - record.last_accessed <= self.prune_threshold
        }

        overflow = len(store) - self.max_queries
        if overflow > 0:
            # Least popular first; among equals the one idle longest goes first.
            victims = sorted(
                store.values(), key=lambda r: (r.hit_count, r.last_accessed, r.query)
            )[:overflow]
            for record in victims:
                del store[record.query]

        removed = before - len(store)
        if not removed or not self._save(store):
            return 0
        log.info(f"Query store pruned: {removed} record(s) removed.")
        return removed

    def clear(self) -> None:
        self._substrate.remove(QUERY_STORE_KEY)
