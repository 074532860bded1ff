"""
Services Layer.

Producer- and consumer-side helpers built on the storage layer: artifact factories,
CSV export, the system log book and the reported-issues list.
"""

from .export import export_vault_csv, write_vault_csv
from .system_log import IssueBook, SystemLogBook

__all__ = ["IssueBook", "SystemLogBook", "export_vault_csv", "write_vault_csv"]
