"""
Daily adherence derived from a medication's append-only record log.

The log is not deduplicated: taking a dose twice on one day appends two
entries. Today's status is decided by the latest entry for today, not by
any entry. A medication with no entry today is PENDING, which is distinct
from an explicit false entry (NOT_TAKEN); only the latter counts as missed.
"""

from collections.abc import Iterable
from datetime import date, datetime, tzinfo

from health_tracker.domain.models import (
    AdherenceState,
    AdherenceStatus,
    Medication,
    MedicationRecord,
)


def calendar_day(instant: datetime, tz: tzinfo | None = None) -> date:
    """Calendar date of an instant in `tz` (the instant's own zone when None)."""
    return instant.astimezone(tz).date() if tz is not None else instant.date()


def today_records(medication: Medication, today: date) -> list[MedicationRecord]:
    return [r for r in medication.records if r.date == today]


def today_record(medication: Medication, today: date) -> MedicationRecord | None:
    """Most recently appended entry for `today`, if any."""
    entries = today_records(medication, today)
    return entries[-1] if entries else None


def adherence_status(medication: Medication, today: date) -> AdherenceStatus:
    entries = today_records(medication, today)
    if not entries:
        state = AdherenceState.PENDING
        record = None
    else:
        record = entries[-1]
        state = AdherenceState.TAKEN if record.taken else AdherenceState.NOT_TAKEN

    return AdherenceStatus(
        medication_id=medication.id,
        day=today,
        state=state,
        record=record,
        entries_today=len(entries),
    )


def is_taken_today(medication: Medication, today: date) -> bool:
    return adherence_status(medication, today).is_taken


def missed_count(medications: Iterable[Medication], today: date) -> int:
    """Medications with an explicit not-taken entry today; PENDING is not missed."""
    return sum(
        1 for m in medications if adherence_status(m, today).state is AdherenceState.NOT_TAKEN
    )


def taken_count(medications: Iterable[Medication], today: date) -> int:
    return sum(1 for m in medications if is_taken_today(m, today))
