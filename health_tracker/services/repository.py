"""
Typed repository over the record store.

Validation happens here, before any storage call, so a rejected submission
never produces a partial write. Update and delete failures on missing ids or
storage hiccups are logged and turned into no-ops; they never propagate to
the dashboard session.
"""

import re
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from health_tracker.config import AppConfig
from health_tracker.domain.models import (
    Contact,
    ContactDraft,
    ContactUpdate,
    HeartRateReading,
    Medication,
    MedicationDraft,
    MedicationRecord,
    UserData,
)
from health_tracker.errors import NotFoundError, StorageError, ValidationError
from health_tracker.observability import logger
from health_tracker.services.record_store import Collection, RecordStore


Clock = Callable[[], datetime]
DraftT = TypeVar("DraftT", bound=BaseModel)

# Far above any human heart rate, far below the SQLite INTEGER limit
MAX_BPM = 1000

_WHOLE_NUMBER = re.compile(r"[+-]?[0-9]+")


def system_clock() -> datetime:
    return datetime.now(UTC)


def parse_bpm(raw: Any) -> int:
    """Coerce form input to a positive integer bpm or raise ValidationError."""
    if isinstance(raw, bool):
        raise ValidationError("bpm must be a number", field="bpm")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float):
        if not raw.is_integer():
            raise ValidationError("bpm must be a whole number", field="bpm")
        value = int(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if not _WHOLE_NUMBER.fullmatch(text):
            raise ValidationError(f"bpm must be a whole number, got {raw!r}", field="bpm")
        value = int(text)
    else:
        raise ValidationError("bpm is required", field="bpm")

    if value <= 0:
        raise ValidationError("bpm must be positive", field="bpm")
    if value > MAX_BPM:
        raise ValidationError(f"bpm must be at most {MAX_BPM}", field="bpm")
    return value


def _validated(model: type[DraftT], fields: Mapping[str, Any]) -> DraftT:
    try:
        return model.model_validate(dict(fields))
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ValidationError(f"Invalid {field}: {first['msg']}", field=field) from e


def _require_user(user_id: str) -> None:
    if not user_id or not str(user_id).strip():
        raise ValidationError("A user id is required", field="user_id")


class HealthRepository:
    """
    CRUD over readings, medications and contacts for one store.

    Every read builds new model instances from the store, so callers never
    share mutable state with it or with each other.
    """

    def __init__(
        self,
        store: RecordStore,
        config: AppConfig | None = None,
        clock: Clock = system_clock,
    ) -> None:
        self.store = store
        self.config = config or AppConfig()
        self.clock = clock
        self.logger = logger.bind(component="health_repository")

    def now(self) -> datetime:
        """Clock reading in the display timezone."""
        return self.clock().astimezone(self.config.display.zone())

    def _fail_soft(self, operation: str, action: Callable[[], None], **context: Any) -> bool:
        try:
            action()
        except NotFoundError as e:
            self.logger.warning(f"{operation}_not_found", error=str(e), **context)
            return False
        except StorageError as e:
            self.logger.error(f"{operation}_failed", error=str(e), **context)
            return False
        return True

    # Heart rate

    def add_reading(self, user_id: str, bpm: Any) -> HeartRateReading:
        _require_user(user_id)
        value = parse_bpm(bpm)
        now = self.now()
        display = self.config.display
        fields = {
            "user_id": user_id,
            "bpm": value,
            "timestamp": now,
            "date": now.strftime(display.date_format),
            "time": now.strftime(display.time_format),
        }
        record_id = self.store.put(Collection.HEART_RATES, fields)
        self.logger.info("reading_added", user_id=user_id, reading_id=record_id, bpm=value)
        return HeartRateReading(id=record_id, **fields)

    # Medications

    def add_medication(self, user_id: str, fields: Mapping[str, Any]) -> Medication:
        _require_user(user_id)
        draft = _validated(MedicationDraft, fields)
        record = {
            "user_id": user_id,
            "name": draft.name,
            "dose": draft.dose,
            "time": draft.time,
            "timing": draft.timing.value,
            "records": [],
        }
        record_id = self.store.put(Collection.MEDICATIONS, record)
        self.logger.info("medication_added", user_id=user_id, medication_id=record_id)
        return Medication(id=record_id, **record)

    def get_medication(self, medication_id: int) -> Medication:
        """Fetch one medication; raises NotFoundError for unknown ids."""
        stored = self.store.get(Collection.MEDICATIONS, medication_id).unwrap()
        return Medication.model_validate(stored)

    def take_medication(self, medication_id: int) -> Medication:
        """
        Append a taken entry for today and return the refreshed medication.

        Append-only: a second call on the same day adds a second entry.
        Raises NotFoundError when the id is unknown.
        """
        medication = self.get_medication(medication_id)
        entry = MedicationRecord(date=self.now().date(), taken=True)
        records = [*medication.records, entry]
        self.store.update(
            Collection.MEDICATIONS,
            medication_id,
            {"records": [r.model_dump(mode="json") for r in records]},
        )
        self.logger.info(
            "medication_taken",
            medication_id=medication_id,
            day=entry.date.isoformat(),
            entries=len(records),
        )
        return self.get_medication(medication_id)

    def delete_medication(self, medication_id: int) -> bool:
        return self._fail_soft(
            "medication_delete",
            lambda: self.store.delete(Collection.MEDICATIONS, medication_id),
            medication_id=medication_id,
        )

    # Contacts

    def add_contact(self, user_id: str, fields: Mapping[str, Any]) -> Contact:
        _require_user(user_id)
        draft = _validated(ContactDraft, fields)
        record = {"user_id": user_id, **draft.model_dump()}
        record_id = self.store.put(Collection.CONTACTS, record)
        self.logger.info("contact_added", user_id=user_id, contact_id=record_id)
        return Contact(id=record_id, **record)

    def update_contact(self, contact_id: int, fields: Mapping[str, Any]) -> bool:
        changes = _validated(ContactUpdate, fields).model_dump(exclude_none=True)
        if not changes:
            self.logger.debug("contact_update_empty", contact_id=contact_id)
            return False
        return self._fail_soft(
            "contact_update",
            lambda: self.store.update(Collection.CONTACTS, contact_id, changes),
            contact_id=contact_id,
        )

    def delete_contact(self, contact_id: int) -> bool:
        return self._fail_soft(
            "contact_delete",
            lambda: self.store.delete(Collection.CONTACTS, contact_id),
            contact_id=contact_id,
        )

    # Whole-user operations

    def delete_user_data(self, user_id: str) -> int:
        """Cascade a user deletion across all collections; returns records removed."""
        _require_user(user_id)
        removed = 0
        for collection in Collection:
            try:
                removed += self.store.delete_all_by_user(collection, user_id)
            except StorageError as e:
                self.logger.error(
                    "user_data_delete_failed",
                    user_id=user_id,
                    collection=collection.value,
                    error=str(e),
                )
        return removed

    def load_user_data(self, user_id: str) -> UserData:
        """Fresh snapshot of a user's three collections, readings oldest first."""
        readings = [
            HeartRateReading.model_validate(r)
            for r in self.store.get_all_by_user(Collection.HEART_RATES, user_id)
        ]
        readings.sort(key=lambda r: (r.timestamp, r.id))
        medications = [
            Medication.model_validate(r)
            for r in self.store.get_all_by_user(Collection.MEDICATIONS, user_id)
        ]
        contacts = [
            Contact.model_validate(r)
            for r in self.store.get_all_by_user(Collection.CONTACTS, user_id)
        ]
        return UserData(
            user_id=user_id, readings=readings, medications=medications, contacts=contacts
        )
