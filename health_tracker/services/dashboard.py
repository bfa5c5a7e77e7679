"""
Presentation-boundary services: the stats overview and the dashboard session.

The session owns the only in-memory snapshot of a user's data. Every
mutation is followed by a full reload from the store (read-your-writes), and
the snapshot is discarded as soon as the authenticated user changes.
"""

from collections.abc import Callable, Mapping
from datetime import date
from typing import Any, TypeVar

from health_tracker.domain.models import (
    AdherenceStatus,
    AuthState,
    ClassificationThresholds,
    Contact,
    DashboardOverview,
    HeartRateReading,
    Medication,
    TimeWindow,
    UserData,
    WindowSummary,
)
from health_tracker.errors import NotFoundError, StorageError
from health_tracker.observability import logger
from health_tracker.services.adherence import (
    adherence_status,
    calendar_day,
    missed_count,
    taken_count,
)
from health_tracker.services.aggregation import summarize_window
from health_tracker.services.classification import DEFAULT_THRESHOLDS, classify
from health_tracker.services.repository import HealthRepository


T = TypeVar("T")


def build_overview(
    data: UserData,
    today: date,
    thresholds: ClassificationThresholds = DEFAULT_THRESHOLDS,
) -> DashboardOverview:
    """Figures for the stats cards; every regimen is treated as daily."""
    latest = max(data.readings, key=lambda r: (r.timestamp, r.id), default=None)
    return DashboardOverview(
        latest_bpm=latest.bpm if latest is not None else None,
        latest_category=(
            classify(latest.bpm, thresholds).category if latest is not None else None
        ),
        scheduled_today=len(data.medications),
        taken_today=taken_count(data.medications, today),
        missed_today=missed_count(data.medications, today),
    )


class DashboardSession:
    """Single-user view state driven by the external auth signal."""

    def __init__(self, repository: HealthRepository) -> None:
        self.repository = repository
        self.config = repository.config
        self._auth = AuthState()
        self._data: UserData | None = None
        self.logger = logger.bind(component="dashboard_session")

    @property
    def user_id(self) -> str | None:
        return self._auth.active_user

    @property
    def data(self) -> UserData | None:
        return self._data

    def sync_auth(self, auth: AuthState) -> UserData | None:
        """Apply a new auth signal, dropping the previous user's snapshot on change."""
        previous = self.user_id
        self._auth = auth
        current = self.user_id

        if current != previous:
            self._data = None
            self.logger.info("session_user_changed", previous=previous, current=current)

        if current is not None and self._data is None:
            self.reload()
        return self._data

    def reload(self) -> UserData | None:
        user_id = self.user_id
        if user_id is None:
            self._data = None
            return None
        try:
            self._data = self.repository.load_user_data(user_id)
        except StorageError as e:
            self.logger.error("session_reload_failed", user_id=user_id, error=str(e))
        return self._data

    def _mutate(self, operation: str, action: Callable[[str], T]) -> T | None:
        user_id = self.user_id
        if user_id is None:
            self.logger.warning("mutation_without_user", operation=operation)
            return None

        result: T | None
        try:
            result = action(user_id)
        except (NotFoundError, StorageError) as e:
            self.logger.warning(f"{operation}_failed", user_id=user_id, error=str(e))
            result = None
        self.reload()
        return result

    # Mutations

    def record_heart_rate(self, bpm: Any) -> HeartRateReading | None:
        return self._mutate(
            "record_heart_rate", lambda uid: self.repository.add_reading(uid, bpm)
        )

    def add_medication(self, fields: Mapping[str, Any]) -> Medication | None:
        return self._mutate(
            "add_medication", lambda uid: self.repository.add_medication(uid, fields)
        )

    def take_medication(self, medication_id: int) -> Medication | None:
        return self._mutate(
            "take_medication", lambda _uid: self.repository.take_medication(medication_id)
        )

    def delete_medication(self, medication_id: int) -> bool:
        result = self._mutate(
            "delete_medication", lambda _uid: self.repository.delete_medication(medication_id)
        )
        return bool(result)

    def add_contact(self, fields: Mapping[str, Any]) -> Contact | None:
        return self._mutate("add_contact", lambda uid: self.repository.add_contact(uid, fields))

    def update_contact(self, contact_id: int, fields: Mapping[str, Any]) -> bool:
        result = self._mutate(
            "update_contact", lambda _uid: self.repository.update_contact(contact_id, fields)
        )
        return bool(result)

    def delete_contact(self, contact_id: int) -> bool:
        result = self._mutate(
            "delete_contact", lambda _uid: self.repository.delete_contact(contact_id)
        )
        return bool(result)

    # Views

    def today(self) -> date:
        return calendar_day(self.repository.now())

    def window_summary(self, window: TimeWindow | str) -> WindowSummary:
        readings = self._data.readings if self._data is not None else []
        return summarize_window(
            readings,
            window,
            reference=self.repository.now(),
            analytics=self.config.analytics,
            first_weekday=self.config.display.first_weekday,
        )

    def overview(self) -> DashboardOverview:
        if self._data is None:
            return DashboardOverview()
        return build_overview(self._data, self.today(), self.config.analytics.thresholds)

    def adherence(self) -> list[AdherenceStatus]:
        if self._data is None:
            return []
        today = self.today()
        return [adherence_status(m, today) for m in self._data.medications]
