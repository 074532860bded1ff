"""
Exports the active vault to CSV.
"""

import csv
import logging
from pathlib import Path
from typing import TextIO

from insight_store.storage.vault import ArtifactVault

log = logging.getLogger(__name__)

CSV_HEADER = [
    "kind",
    "title",
    "metric_primary",
    "metric_secondary",
    "created_at",
    "external_url",
    "id",
]


def write_vault_csv(vault: ArtifactVault, stream: TextIO) -> int:
    """Writes every active artifact, newest first. Returns the number of rows."""
    items = sorted(vault.list(), key=lambda item: item.created_at, reverse=True)
    writer = csv.writer(stream)
    writer.writerow(CSV_HEADER)
    for item in items:
        writer.writerow(
            [
                item.kind.value,
                item.title,
                item.metric_primary,
                item.metric_secondary,
                item.created_at.isoformat(timespec="seconds"),
                item.external_url or "",
                item.id,
            ]
        )
    return len(items)


def export_vault_csv(vault: ArtifactVault, path: Path) -> int:
    """
    Writes the active vault to `path` as UTF-8 CSV with a byte-order mark, so
    spreadsheet tools detect the encoding of non-ASCII titles.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8-sig", newline="") as f:
        rows = write_vault_csv(vault, f)
    log.info(f"Exported {rows} vault item(s) to '{path}'.")
    return rows
