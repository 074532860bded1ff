"""
Defines custom exceptions for the storage layer to allow for more specific error
handling.
"""


class InsightStoreError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(InsightStoreError):
    """Raised for issues related to configuration loading or validation."""


class StorageWriteError(InsightStoreError):
    """
    Raised by a substrate when it rejects a write, e.g. because the profile quota
    would be exceeded.
    """


class StorageReadCorruption(InsightStoreError):
    """Raised when a persisted payload cannot be parsed or validated."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Corrupted payload under '{key}': {reason}")
        self.key = key
        self.reason = reason
