"""
Pydantic models for everything the storage layer persists, plus the result values
returned by mutating operations.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

T = TypeVar("T")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Outcome(Enum):
    """Result of a vault mutation."""

    OK = "ok"
    CAPACITY_EXCEEDED = "capacity_exceeded"  # Insert/restore blocked by the cap
    NOT_FOUND = "not_found"  # Id is not in the state the operation expects
    WRITE_FAILED = "write_failed"  # Substrate rejected the write

    @property
    def ok(self) -> bool:
        return self is Outcome.OK


class SearchMode(str, Enum):
    """How a dashboard query was issued."""

    KEYWORD = "keyword"
    CHANNEL = "channel"


class ArtifactKind(str, Enum):
    """The kinds of analysis snapshots a user can keep in the vault."""

    CHANNEL = "channel"
    VIDEO = "video"
    OUTLIER = "outlier"
    TREND = "trend"
    THUMBNAIL_STRATEGY = "thumbnailStrategy"
    ALGORITHM_DIAGNOSIS = "algorithmDiagnosis"
    MY_CHANNEL = "myChannel"


class LifecycleState(str, Enum):
    """Stored lifecycle states. Purged items are simply absent."""

    ACTIVE = "active"
    TRASHED = "trashed"


class CacheEntry(BaseModel, Generic[T]):
    """A cached value stamped with the time it was stored."""

    value: T
    stored_at: AwareDatetime


class QueryRecord(BaseModel):
    """Popularity record for one normalized dashboard query."""

    model_config = ConfigDict(validate_assignment=True)

    query: str
    hit_count: int = Field(1, ge=1)
    last_accessed: AwareDatetime
    mode: SearchMode = SearchMode.KEYWORD


class Artifact(BaseModel):
    """A user-saved snapshot of an analyzed subject."""

    id: str = Field(..., min_length=1)
    kind: ArtifactKind
    title: str
    thumbnail_ref: str | None = None
    metric_primary: str = ""
    metric_secondary: str = ""
    created_at: AwareDatetime = Field(default_factory=utc_now)
    external_url: str | None = None
    payload: Any = None
    lifecycle_state: LifecycleState = LifecycleState.ACTIVE
    trashed_at: AwareDatetime | None = None

    @field_validator("thumbnail_ref", "external_url")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Producers often hand over empty strings for missing links."""
        return v or None

    @model_validator(mode="after")
    def validate_trash_stamp(self) -> "Artifact":
        """trashed_at is set if and only if the artifact is in the trash."""
        is_trashed = self.lifecycle_state is LifecycleState.TRASHED
        if is_trashed != (self.trashed_at is not None):
            raise ValueError("trashed_at must be set exactly when the item is trashed.")
        return self

    @property
    def is_active(self) -> bool:
        return self.lifecycle_state is LifecycleState.ACTIVE


class SystemLogEntry(BaseModel):
    """One line of the admin-facing system log."""

    time: AwareDatetime
    user: str
    action: str
    status: str = "Success"


class IssueStatus(str, Enum):
    PENDING = "Pending"
    RESOLVED = "Resolved"


class ReportedIssue(BaseModel):
    """A problem report filed by a user and worked off on the admin screen."""

    id: int = Field(..., ge=1)
    time: AwareDatetime
    user: str
    message: str
    status: IssueStatus = IssueStatus.PENDING
