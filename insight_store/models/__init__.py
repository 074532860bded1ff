"""
Data Models Layer.

This package contains the Pydantic models and dataclasses that define the core data
structures used throughout the storage layer, such as configuration, persisted
records and statistics.
"""

from .config import StoreConfig
from .records import (
    Artifact,
    ArtifactKind,
    CacheEntry,
    IssueStatus,
    LifecycleState,
    Outcome,
    QueryRecord,
    ReportedIssue,
    SearchMode,
    SystemLogEntry,
)
from .stats import CacheStats, MaintenanceReport, VaultUsage

__all__ = [
    "Artifact",
    "ArtifactKind",
    "CacheEntry",
    "CacheStats",
    "IssueStatus",
    "LifecycleState",
    "MaintenanceReport",
    "Outcome",
    "QueryRecord",
    "ReportedIssue",
    "SearchMode",
    "StoreConfig",
    "SystemLogEntry",
    "VaultUsage",
]
