"""Shared fixtures: an in-memory store, a fixed clock and UTC display settings."""

from collections.abc import Iterator
from datetime import UTC, datetime

import pytest

from health_tracker.config import AppConfig, DisplayConfig, StoreConfig
from health_tracker.domain.models import HeartRateReading
from health_tracker.services.dashboard import DashboardSession
from health_tracker.services.record_store import RecordStore
from health_tracker.services.repository import HealthRepository

# Monday, so the Sunday-start week began on 2026-10-18
FIXED_NOW = datetime(2026, 10, 19, 15, 30, tzinfo=UTC)


class FakeClock:
    """Settable clock injected into the repository."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_reading(
    reading_id: int, bpm: int, timestamp: datetime, user_id: str = "u1"
) -> HeartRateReading:
    return HeartRateReading(
        id=reading_id,
        user_id=user_id,
        bpm=bpm,
        timestamp=timestamp,
        date=timestamp.strftime("%m/%d/%Y"),
        time=timestamp.strftime("%H:%M"),
    )


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        store=StoreConfig(url="sqlite://"),
        display=DisplayConfig(timezone="UTC"),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(app_config: AppConfig) -> Iterator[RecordStore]:
    record_store = RecordStore(app_config.store)
    yield record_store
    record_store.close()


@pytest.fixture
def repository(store: RecordStore, app_config: AppConfig, clock: FakeClock) -> HealthRepository:
    return HealthRepository(store, app_config, clock=clock)


@pytest.fixture
def session(repository: HealthRepository) -> DashboardSession:
    return DashboardSession(repository)
