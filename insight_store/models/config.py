"""
Pydantic model for the storage layer configuration.
Provides robust validation for every tunable limit.
"""

from datetime import timedelta

from pydantic import BaseModel, Field, field_validator, model_validator


class StoreConfig(BaseModel):
    """A validated configuration model for the persistence layer."""

    # Vault limits
    max_capacity: int = 500
    warning_threshold: int = 450
    trash_retention_days: int = 7
    data_minimization_window_days: int = 30

    # Query popularity limits
    max_queries: int = 200
    prune_threshold_days: int = 30

    # Caches
    cache_ttl_hours: int = 24
    system_log_limit: int = 50

    # Substrate
    quota_bytes: int | None = None

    # Internal fields not loaded from INI file
    profile_dir: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator(
        "max_capacity",
        "warning_threshold",
        "trash_retention_days",
        "data_minimization_window_days",
        "max_queries",
        "prune_threshold_days",
        "cache_ttl_hours",
        "system_log_limit",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Ensures every limit is a positive integer."""
        if v < 1:
            raise ValueError("Limits must be positive integers.")
        return v

    @field_validator("quota_bytes")
    @classmethod
    def validate_quota(cls, v: int | None) -> int | None:
        """An unset or zero quota means the substrate is unbounded."""
        if v is None or v == 0:
            return None
        if v < 0:
            raise ValueError("Quota must be a positive number of bytes.")
        return v

    @model_validator(mode="after")
    def validate_warning_threshold(self) -> "StoreConfig":
        """The warning threshold must sit below the hard capacity cap."""
        if self.warning_threshold >= self.max_capacity:
            raise ValueError(
                f"warning_threshold ({self.warning_threshold}) must be lower than "
                f"max_capacity ({self.max_capacity})."
            )
        return self

    @property
    def default_max_age(self) -> timedelta:
        """Freshness window for callers that don't choose their own."""
        return timedelta(hours=self.cache_ttl_hours)

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"profile_dir"}
        return {key for key in cls.model_fields if key not in internal_fields}
