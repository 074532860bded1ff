"""
A substrate-backed JSON cache with a caller-supplied time-to-live (TTL), used for
API responses, computed velocity snapshots and system logs.
Enhanced with statistics tracking for cache hits and misses.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from pydantic import TypeAdapter

from insight_store.exceptions import StorageReadCorruption, StorageWriteError
from insight_store.models.records import CacheEntry, utc_now
from insight_store.models.stats import CacheStats

from . import codec
from .substrate import KeyValueSubstrate

log = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "cache"

_ENTRY_ADAPTER = TypeAdapter(CacheEntry[Any])


class ExpiringCache:
    """
    One logical cache living under its own key namespace in the substrate.

    Entries are keyed individually as `cache:<namespace>:<key>`. Freshness is not
    stored with the entry: every `get` call passes its own `max_age`, so different
    callers may apply different windows to the same entry.
    """

    def __init__(
        self,
        substrate: KeyValueSubstrate,
        namespace: str,
        clock: Callable[[], datetime] = utc_now,
        stats: CacheStats | None = None,
    ):
        """
        Initializes the cache.

        Args:
            substrate: The key-value store entries are written to.
            namespace: Name of this cache; must be non-empty and free of ':'.
            clock: Returns the current (timezone-aware) time.
            stats: Optional statistics object updated on every lookup and write.
        """
        if not namespace or ":" in namespace:
            raise ValueError(f"Invalid cache namespace: {namespace!r}")
        self.namespace = namespace
        self.prefix = f"{CACHE_KEY_PREFIX}:{namespace}:"
        self._substrate = substrate
        self._clock = clock
        self.stats = stats if stats is not None else CacheStats()

    def _full_key(self, key: str) -> str:
        return self.prefix + key

    def _load_entry(self, key: str) -> CacheEntry | None:
        """Reads an entry, dropping it if the payload is corrupted."""
        full_key = self._full_key(key)
        try:
            return codec.load(self._substrate, full_key, _ENTRY_ADAPTER)
        except StorageReadCorruption as e:
            log.warning(f"[{self.namespace}] Dropping corrupted cache entry: {e}")
            self._substrate.remove(full_key)
            return None

    def put(self, key: str, value: Any) -> bool:
        """
        Stores `value` under `key`, overwriting any existing entry and stamping the
        current time. Returns False if the substrate rejected the write.
        """
        entry = CacheEntry[Any](value=value, stored_at=self._clock())
        try:
            codec.dump(self._substrate, self._full_key(key), _ENTRY_ADAPTER, entry)
        except StorageWriteError as e:
            self.stats.write_failures += 1
            log.warning(f"[{self.namespace}] Cache write failed for key '{key}': {e}")
            return False
        log.debug(f"[{self.namespace}] SET for key: {key}")
        return True

    def get(self, key: str, max_age: timedelta) -> Any | None:
        """
        Returns the cached value if it is at most `max_age` old.

        A stale entry is deleted before returning None.
        """
        entry = self._load_entry(key)
        if entry is None:
            self.stats.record_lookup(hit=False)
            return None

        if self._clock() - entry.stored_at > max_age:
            log.debug(f"[{self.namespace}] EXPIRED for key: {key}")
            self._substrate.remove(self._full_key(key))
            self.stats.record_lookup(hit=False, stale=True)
            return None

        log.debug(f"[{self.namespace}] HIT for key: {key}")
        self.stats.record_lookup(hit=True)
        return entry.value

    def get_raw(self, key: str) -> CacheEntry | None:
        """Returns the entry regardless of its age, without evicting anything."""
        return self._load_entry(key)

    def delete(self, key: str) -> None:
        self._substrate.remove(self._full_key(key))

    def keys(self) -> list[str]:
        """Keys currently stored in this cache, without the namespace prefix."""
        return [
            k[len(self.prefix) :] for k in self._substrate.keys() if k.startswith(self.prefix)
        ]

    def clear(self) -> int:
        """
        Removes every entry in this cache's namespace. Keys owned by other
        components are never touched. Returns the number of entries removed.
        """
        removed = 0
        for key in self._substrate.keys():
            if key.startswith(self.prefix):
                self._substrate.remove(key)
                removed += 1
        log.info(f"[{self.namespace}] Cleared {removed} cache entries.")
        return removed
