"""Shared fixtures: a deterministic clock and an in-memory remote source."""

from datetime import datetime, timedelta, timezone

import pytest

from livesync.remote.memory import InMemoryCollectionSource


class StepClock:
    """Clock that advances one second per reading."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def source(clock: StepClock) -> InMemoryCollectionSource:
    return InMemoryCollectionSource(clock=clock)
