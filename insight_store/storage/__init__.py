"""
Storage Layer.

This package handles all data persistence: the key-value substrates, the expiring
caches, the query popularity tracker, the artifact vault and the configuration file.
"""

from .cache import ExpiringCache
from .config_manager import ConfigManager
from .query_tracker import PopularityTracker, normalize_query
from .substrate import KeyValueSubstrate, MemorySubstrate, SqliteSubstrate
from .vault import ArtifactVault

__all__ = [
    "ArtifactVault",
    "ConfigManager",
    "ExpiringCache",
    "KeyValueSubstrate",
    "MemorySubstrate",
    "PopularityTracker",
    "SqliteSubstrate",
    "normalize_query",
]
