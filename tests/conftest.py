"""Shared pytest fixtures for insight_store tests."""

from datetime import datetime, timedelta, timezone

import pytest

from insight_store.models import Artifact, ArtifactKind, StoreConfig
from insight_store.storage import MemorySubstrate

START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """A controllable clock; call it to read the time, `advance` to move it."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def substrate() -> MemorySubstrate:
    """An unbounded in-memory substrate."""
    return MemorySubstrate()


@pytest.fixture
def config() -> StoreConfig:
    """A small configuration that makes limits easy to hit."""
    return StoreConfig(
        max_capacity=3,
        warning_threshold=2,
        trash_retention_days=7,
        data_minimization_window_days=30,
        max_queries=2,
        prune_threshold_days=30,
    )


def build_artifact(artifact_id: str, title: str = "", kind=ArtifactKind.CHANNEL) -> Artifact:
    return Artifact(
        id=artifact_id,
        kind=kind,
        title=title or f"Item {artifact_id}",
        metric_primary="Subscribers 1,000",
        metric_secondary="Videos 10",
        payload={"id": artifact_id},
    )


@pytest.fixture
def make_artifact():
    """Factory for minimal channel artifacts."""
    return build_artifact
