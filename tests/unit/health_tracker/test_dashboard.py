"""
Tests for the dashboard session and the stats overview.

The session is the presentation boundary: it reloads after every mutation,
ignores mutations without a user and never lets a storage hiccup escape.
"""

from datetime import UTC, date, datetime, timedelta

import pytest
from conftest import FIXED_NOW, FakeClock, make_reading

from health_tracker.domain.models import (
    AdherenceState,
    AuthState,
    HeartRateCategory,
    Medication,
    MedicationRecord,
    MedicationTiming,
    TimeWindow,
    UserData,
)
from health_tracker.errors import StorageError, ValidationError
from health_tracker.services.dashboard import DashboardSession, build_overview
from health_tracker.services.record_store import Collection
from health_tracker.services.repository import HealthRepository

TODAY = date(2026, 10, 19)
SIGNED_IN = AuthState(user_id="u1", is_authenticated=True)
ASPIRIN = {"name": "Aspirin", "dose": "100mg", "time": "08:00", "timing": "before"}


def med(med_id: int, *records: MedicationRecord) -> Medication:
    return Medication(
        id=med_id,
        user_id="u1",
        name="m",
        dose="1",
        time="08:00",
        timing=MedicationTiming.AFTER_MEAL,
        records=list(records),
    )


class TestBuildOverview:
    def test_empty_data(self) -> None:
        overview = build_overview(UserData(user_id="u1"), TODAY)

        assert overview.latest_bpm is None
        assert overview.latest_category is None
        assert overview.scheduled_today == 0
        assert overview.missed_today == 0

    def test_latest_reading_is_by_timestamp_not_position(self) -> None:
        data = UserData(
            user_id="u1",
            readings=[
                make_reading(1, 120, FIXED_NOW),
                make_reading(2, 70, FIXED_NOW - timedelta(hours=2)),
            ],
        )

        overview = build_overview(data, TODAY)

        assert overview.latest_bpm == 120
        assert overview.latest_category is HeartRateCategory.TACHYCARDIA

    def test_medication_counts(self) -> None:
        data = UserData(
            user_id="u1",
            medications=[
                med(1),
                med(2, MedicationRecord(date=TODAY, taken=False)),
                med(3, MedicationRecord(date=TODAY, taken=True)),
            ],
        )

        overview = build_overview(data, TODAY)

        assert overview.scheduled_today == 3
        assert overview.taken_today == 1
        assert overview.missed_today == 1


class TestAuthBoundary:
    def test_no_data_until_authenticated(self, session: DashboardSession) -> None:
        assert session.sync_auth(AuthState(user_id="u1", is_loading=True)) is None
        assert session.data is None

        data = session.sync_auth(SIGNED_IN)

        assert data is not None
        assert data.user_id == "u1"

    def test_switching_user_discards_previous_snapshot(self, session: DashboardSession) -> None:
        session.sync_auth(SIGNED_IN)
        session.record_heart_rate("72")
        assert session.data is not None and len(session.data.readings) == 1

        data = session.sync_auth(AuthState(user_id="u2", is_authenticated=True))

        assert data is not None
        assert data.user_id == "u2"
        assert data.readings == []

    def test_sign_out_clears_views(self, session: DashboardSession) -> None:
        session.sync_auth(SIGNED_IN)
        session.record_heart_rate("72")

        session.sync_auth(AuthState())

        assert session.data is None
        assert session.overview().latest_bpm is None
        assert session.adherence() == []
        assert session.window_summary(TimeWindow.TODAY).series == []

    def test_mutation_without_user_is_ignored(
        self, session: DashboardSession, repository: HealthRepository
    ) -> None:
        assert session.record_heart_rate("72") is None
        assert session.add_contact({"name": "A", "relationship": "B", "phone": "C"}) is None

        assert repository.load_user_data("u1").readings == []


class TestReadYourWrites:
    def test_every_mutation_refreshes_snapshot(self, session: DashboardSession) -> None:
        session.sync_auth(SIGNED_IN)

        medication = session.add_medication(ASPIRIN)
        assert medication is not None
        assert session.data is not None and len(session.data.medications) == 1

        session.take_medication(medication.id)
        assert session.data.medications[0].records == [
            MedicationRecord(date=TODAY, taken=True)
        ]

        contact = session.add_contact({"name": "Dana", "relationship": "Sibling", "phone": "1"})
        assert contact is not None
        assert session.update_contact(contact.id, {"phone": "2"}) is True
        assert session.data.contacts[0].phone == "2"

        assert session.delete_contact(contact.id) is True
        assert session.delete_medication(medication.id) is True
        assert session.data.contacts == []
        assert session.data.medications == []

    def test_validation_error_propagates_and_leaves_state(self, session: DashboardSession) -> None:
        session.sync_auth(SIGNED_IN)
        before = session.data

        with pytest.raises(ValidationError):
            session.record_heart_rate("-3")

        assert session.data == before

    def test_oversized_bpm_is_a_validation_error(self, session: DashboardSession) -> None:
        session.sync_auth(SIGNED_IN)

        with pytest.raises(ValidationError) as exc_info:
            session.record_heart_rate("99999999999999999999")

        assert exc_info.value.field == "bpm"
        assert session.data is not None and session.data.readings == []

    def test_take_unknown_medication_does_not_raise(self, session: DashboardSession) -> None:
        session.sync_auth(SIGNED_IN)

        assert session.take_medication(999) is None

    def test_delete_missing_contact_does_not_raise(self, session: DashboardSession) -> None:
        session.sync_auth(SIGNED_IN)
        session.add_contact({"name": "Dana", "relationship": "Sibling", "phone": "1"})
        before = session.data

        assert session.delete_contact(31337) is False
        assert session.data == before

    def test_storage_failure_on_add_is_contained(
        self,
        session: DashboardSession,
        repository: HealthRepository,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        session.sync_auth(SIGNED_IN)

        def broken_put(collection: Collection, record: object) -> int:
            raise StorageError("database is locked")

        monkeypatch.setattr(repository.store, "put", broken_put)

        assert session.record_heart_rate("72") is None
        assert session.data is not None and session.data.readings == []


class TestViews:
    def test_window_summary_uses_session_clock(
        self, session: DashboardSession, clock: FakeClock
    ) -> None:
        session.sync_auth(SIGNED_IN)
        for minutes, bpm in [(0, 60), (30, 80)]:
            clock.now = FIXED_NOW - timedelta(days=1, minutes=minutes)
            session.record_heart_rate(bpm)
        clock.now = FIXED_NOW

        weekly = session.window_summary(TimeWindow.WEEKLY)
        today = session.window_summary("today")

        assert [p.bpm for p in weekly.series] == [70]
        assert today.series == []
        assert weekly.reference == FIXED_NOW

    def test_overview_and_adherence(self, session: DashboardSession, clock: FakeClock) -> None:
        session.sync_auth(SIGNED_IN)
        taken = session.add_medication(ASPIRIN)
        session.add_medication({**ASPIRIN, "name": "Metformin"})
        assert taken is not None
        session.take_medication(taken.id)
        session.record_heart_rate(55)

        overview = session.overview()
        states = [s.state for s in session.adherence()]

        assert overview.latest_bpm == 55
        assert overview.latest_category is HeartRateCategory.BRADYCARDIA
        assert overview.scheduled_today == 2
        assert overview.taken_today == 1
        assert overview.missed_today == 0
        assert states == [AdherenceState.TAKEN, AdherenceState.PENDING]

    def test_taken_yesterday_is_pending_today(
        self, session: DashboardSession, clock: FakeClock
    ) -> None:
        session.sync_auth(SIGNED_IN)
        clock.now = datetime(2026, 10, 18, 9, 0, tzinfo=UTC)
        medication = session.add_medication(ASPIRIN)
        assert medication is not None
        session.take_medication(medication.id)

        clock.now = FIXED_NOW

        assert [s.state for s in session.adherence()] == [AdherenceState.PENDING]
