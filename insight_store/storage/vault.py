"""
The artifact vault: user-curated snapshots kept in an active set and a trash, with a
hard capacity cap on the active set and age-based purging.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from pydantic import TypeAdapter

from insight_store.exceptions import StorageReadCorruption, StorageWriteError
from insight_store.models.config import StoreConfig
from insight_store.models.records import (
    Artifact,
    ArtifactKind,
    LifecycleState,
    Outcome,
    utc_now,
)
from insight_store.models.stats import VaultUsage
from insight_store.utils.structured_logger import VaultEventLogger

from . import codec
from .substrate import KeyValueSubstrate

log = logging.getLogger(__name__)

VAULT_KEY = "vault"

_VAULT_ADAPTER = TypeAdapter(list[Artifact])


class ArtifactVault:
    """
    Owns every Artifact, persisted as one collection under a single key.

    The collection is kept ordered most-recently-upserted first. Ids are unique
    across the active set and the trash. All methods hand out copies; mutating a
    returned Artifact never changes the vault.

    Transitions:
        active  --soft_delete-->          trashed
        trashed --restore (capped)-->     active
        trashed --permanently_delete-->   gone
        trashed --purge_expired-->        gone, once past the trash retention
        any     --purge_expired-->        gone, once past the data-minimization window
    """

    def __init__(
        self,
        substrate: KeyValueSubstrate,
        config: StoreConfig,
        clock: Callable[[], datetime] = utc_now,
        events: VaultEventLogger | None = None,
        purge_on_read: bool = True,
    ):
        """
        Args:
            substrate: The key-value store the collection is written to.
            config: Supplies the capacity cap, warning threshold and retention windows.
            clock: Returns the current (timezone-aware) time.
            events: Optional audit logger for lifecycle events.
            purge_on_read: Run `purge_expired` before every `list` call. Expired items
                are left out of `list` results either way.
        """
        self._substrate = substrate
        self.max_capacity = config.max_capacity
        self.warning_threshold = config.warning_threshold
        self.trash_retention = timedelta(days=config.trash_retention_days)
        self.minimization_window = timedelta(days=config.data_minimization_window_days)
        self._clock = clock
        self._events = events
        self.purge_on_read = purge_on_read

    def _load(self) -> list[Artifact]:
        try:
            return codec.load(self._substrate, VAULT_KEY, _VAULT_ADAPTER) or []
        except StorageReadCorruption as e:
            log.warning(f"Resetting corrupted vault: {e}")
            self._substrate.remove(VAULT_KEY)
            return []

    def _save(self, items: list[Artifact], operation: str) -> bool:
        try:
            codec.dump(self._substrate, VAULT_KEY, _VAULT_ADAPTER, items)
            return True
        except StorageWriteError as e:
            log.error(f"Failed to save vault during {operation}: {e}")
            if self._events:
                self._events.write_failed(operation, str(e))
            return False

    @staticmethod
    def _find(items: list[Artifact], artifact_id: str) -> int | None:
        for index, item in enumerate(items):
            if item.id == artifact_id:
                return index
        return None

    @staticmethod
    def _active_count(items: list[Artifact]) -> int:
        return sum(1 for item in items if item.is_active)

    def _expiry(self, item: Artifact, now: datetime) -> str | None:
        """Names the horizon `item` is past at `now`, or None if it may be kept."""
        if now - item.created_at > self.minimization_window:
            return "minimized"
        if item.trashed_at and now - item.trashed_at > self.trash_retention:
            return "trash"
        return None

    def _reject(self, artifact_id: str, reason: str, active: int) -> Outcome:
        log.warning(
            f"Vault is full ({active}/{self.max_capacity}); {reason} of "
            f"'{artifact_id}' rejected."
        )
        if self._events:
            self._events.artifact_rejected(artifact_id, reason, active)
        return Outcome.CAPACITY_EXCEEDED

    def upsert(self, artifact: Artifact) -> Outcome:
        """
        Inserts `artifact` into the active set, replacing any item with the same id.

        Replacing an active item never consults the cap. A new id, or an id that is
        currently trashed, is rejected with CAPACITY_EXCEEDED when the active set
        is full. The stored copy is stamped with a fresh `created_at`.
        """
        items = self._load()
        index = self._find(items, artifact.id)
        replacing_active = index is not None and items[index].is_active

        active = self._active_count(items)
        if not replacing_active and active >= self.max_capacity:
            return self._reject(artifact.id, "insert", active)

        stored = artifact.model_copy(
            deep=True,
            update={
                "created_at": self._clock(),
                "lifecycle_state": LifecycleState.ACTIVE,
                "trashed_at": None,
            },
        )
        updated = [stored] + [item for item in items if item.id != artifact.id]
        if not self._save(updated, "upsert"):
            return Outcome.WRITE_FAILED

        if self._events:
            self._events.artifact_saved(artifact.id, stored.kind.value, index is not None)
        if not replacing_active and active + 1 >= self.warning_threshold:
            log.warning(
                f"Vault is nearly full: {active + 1}/{self.max_capacity} items."
            )
        return Outcome.OK

    def get(self, artifact_id: str) -> Artifact | None:
        items = self._load()
        index = self._find(items, artifact_id)
        return items[index] if index is not None else None

    def list(
        self,
        scope: LifecycleState = LifecycleState.ACTIVE,
        query: str | None = None,
        kind: ArtifactKind | str | None = None,
    ) -> list[Artifact]:
        """
        Returns the items in `scope`, most recently upserted first.

        Args:
            scope: ACTIVE or TRASHED.
            query: Case-insensitive substring matched against the title.
            kind: Restrict to one kind; None or "all" keeps every kind.
        """
        if self.purge_on_read:
            self.purge_expired()

        wanted_kind = None if kind in (None, "all") else ArtifactKind(kind)
        needle = query.strip().casefold() if query else ""
        now = self._clock()

        # Expired items stay hidden even when the purge above could not be saved.
        return [
            item
            for item in self._load()
            if self._expiry(item, now) is None
            and item.lifecycle_state is scope
            and (wanted_kind is None or item.kind is wanted_kind)
            and needle in item.title.casefold()
        ]

    def soft_delete(self, artifact_id: str) -> Outcome:
        """Moves an active item to the trash."""
        items = self._load()
        index = self._find(items, artifact_id)
        if index is None or not items[index].is_active:
            return Outcome.NOT_FOUND

        items[index] = items[index].model_copy(
            update={
                "lifecycle_state": LifecycleState.TRASHED,
                "trashed_at": self._clock(),
            }
        )
        if not self._save(items, "soft_delete"):
            return Outcome.WRITE_FAILED
        if self._events:
            self._events.artifact_trashed(artifact_id)
        return Outcome.OK

    def restore(self, artifact_id: str) -> Outcome:
        """Moves a trashed item back to the active set, if there is room for it."""
        items = self._load()
        index = self._find(items, artifact_id)
        if index is None or items[index].is_active:
            return Outcome.NOT_FOUND

        active = self._active_count(items)
        if active >= self.max_capacity:
            return self._reject(artifact_id, "restore", active)

        items[index] = items[index].model_copy(
            update={"lifecycle_state": LifecycleState.ACTIVE, "trashed_at": None}
        )
        if not self._save(items, "restore"):
            return Outcome.WRITE_FAILED
        if self._events:
            self._events.artifact_restored(artifact_id)
        return Outcome.OK

    def permanently_delete(self, artifact_id: str) -> Outcome:
        """Removes a trashed item for good. Active items must be trashed first."""
        items = self._load()
        index = self._find(items, artifact_id)
        if index is None or items[index].is_active:
            return Outcome.NOT_FOUND

        del items[index]
        if not self._save(items, "permanently_delete"):
            return Outcome.WRITE_FAILED
        if self._events:
            self._events.artifact_deleted(artifact_id)
        return Outcome.OK

    def purge_expired(self, now: datetime | None = None) -> int:
        """
        Drops trashed items past the trash retention, and any item at all past the
        data-minimization window. An age exactly equal to a window is kept.

        Returns the number of items removed (0 if the result could not be saved).

        Raises:
            ValueError: If `now` carries no timezone.
        """
        if now is not None and now.utcoffset() is None:
            raise ValueError("purge_expired() needs a timezone-aware 'now'.")
        items = self._load()
        if not items:
            return 0
        now = now or self._clock()

        kept: list[Artifact] = []
        trash_expired = minimized = 0
        for item in items:
            reason = self._expiry(item, now)
            if reason == "minimized":
                minimized += 1
            elif reason == "trash":
                trash_expired += 1
            else:
                kept.append(item)

        removed = trash_expired + minimized
        if not removed or not self._save(kept, "purge_expired"):
            return 0

        log.info(
            f"Vault purge removed {removed} item(s): {trash_expired} from the trash, "
            f"{minimized} past the data-minimization window."
        )
        if self._events:
            self._events.vault_purged(trash_expired, minimized)
        return removed

    def clear_vault(self) -> Outcome:
        """Moves every active item to the trash. Items already trashed are untouched."""
        items = self._load()
        now = self._clock()
        moved = 0
        for index, item in enumerate(items):
            if item.is_active:
                items[index] = item.model_copy(
                    update={"lifecycle_state": LifecycleState.TRASHED, "trashed_at": now}
                )
                moved += 1

        if not moved:
            return Outcome.OK
        if not self._save(items, "clear_vault"):
            return Outcome.WRITE_FAILED
        log.info(f"Moved {moved} vault item(s) to the trash.")
        if self._events:
            self._events.vault_cleared(moved)
        return Outcome.OK

    def usage(self) -> VaultUsage:
        items = self._load()
        active = self._active_count(items)
        return VaultUsage(
            active=active,
            trashed=len(items) - active,
            max_capacity=self.max_capacity,
            warning_threshold=self.warning_threshold,
        )
