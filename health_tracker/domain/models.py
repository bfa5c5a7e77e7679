"""
Domain models for the personal health dashboard.

These models represent the core business concepts and are framework-agnostic.
Entities handed out by the repository are frozen so a snapshot can never be
mutated behind the store's back.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, field_validator, model_validator


class MedicationTiming(str, Enum):
    """When a dose is scheduled relative to a meal."""

    BEFORE_MEAL = "before-meal"
    AFTER_MEAL = "after-meal"

    @classmethod
    def parse(cls, value: Any) -> "MedicationTiming":
        """Accept the enum value or the short form used by the entry form."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        aliases = {"before": cls.BEFORE_MEAL, "after": cls.AFTER_MEAL}
        if text in aliases:
            return aliases[text]
        return cls(text)


class HeartRateCategory(str, Enum):
    """Clinical heart-rate bands."""

    BRADYCARDIA = "Bradycardia"
    NORMAL = "Normal"
    TACHYCARDIA = "Tachycardia"


class TimeWindow(str, Enum):
    """Chart windows offered by the heart-rate view."""

    TODAY = "today"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class AdherenceState(str, Enum):
    """
    Today's status of a scheduled medication.

    PENDING (no entry for today) and NOT_TAKEN (an explicit false entry) are
    different states: only NOT_TAKEN counts as missed.
    """

    TAKEN = "taken"
    NOT_TAKEN = "not_taken"
    PENDING = "pending"


# Stored entities


class HeartRateReading(BaseModel):
    """One heart-rate observation."""

    model_config = ConfigDict(frozen=True)

    id: int
    user_id: str
    bpm: int = Field(gt=0)
    timestamp: AwareDatetime = Field(description="Authoritative instant for ordering")
    date: str = Field(description="Display date derived from timestamp")
    time: str = Field(description="Display clock time derived from timestamp")


class MedicationRecord(BaseModel):
    """A single adherence entry in a medication's log."""

    model_config = ConfigDict(frozen=True)

    date: date
    taken: bool


class Medication(BaseModel):
    """A scheduled drug regimen with its append-only adherence log."""

    model_config = ConfigDict(frozen=True)

    id: int
    user_id: str
    name: str
    dose: str
    time: str
    timing: MedicationTiming
    records: list[MedicationRecord] = Field(default_factory=list)

    @field_validator("timing", mode="before")
    @classmethod
    def normalize_timing(cls, v: Any) -> MedicationTiming:
        return MedicationTiming.parse(v)


class Contact(BaseModel):
    """An emergency contact."""

    model_config = ConfigDict(frozen=True)

    id: int
    user_id: str
    name: str
    relationship: str
    phone: str


class UserData(BaseModel):
    """Fresh snapshot of everything a user owns."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    readings: list[HeartRateReading] = Field(default_factory=list)
    medications: list[Medication] = Field(default_factory=list)
    contacts: list[Contact] = Field(default_factory=list)


# Raw form input


class MedicationDraft(BaseModel):
    """Fields submitted by the add-medication form."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    dose: str = Field(min_length=1)
    time: str = Field(min_length=1)
    timing: MedicationTiming = MedicationTiming.BEFORE_MEAL

    @field_validator("timing", mode="before")
    @classmethod
    def normalize_timing(cls, v: Any) -> MedicationTiming:
        return MedicationTiming.parse(v)


class ContactDraft(BaseModel):
    """Fields submitted by the add-contact form."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    relationship: str = Field(min_length=1)
    phone: str = Field(min_length=1)


class ContactUpdate(BaseModel):
    """Partial contact edit; omitted fields are left untouched."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    relationship: str | None = Field(default=None, min_length=1)
    phone: str | None = Field(default=None, min_length=1)


# Derived views


class ClassificationThresholds(BaseModel):
    """Boundaries of the Normal band, inclusive on both ends."""

    model_config = ConfigDict(frozen=True)

    bradycardia_below: int = Field(default=60, gt=0)
    tachycardia_above: int = Field(default=100, gt=0)

    @model_validator(mode="after")
    def ordered_bounds(self) -> "ClassificationThresholds":
        if self.bradycardia_below > self.tachycardia_above:
            raise ValueError("bradycardia_below must not exceed tachycardia_above")
        return self


class Classification(BaseModel):
    """Category and attention flag for one bpm value."""

    model_config = ConfigDict(frozen=True)

    category: HeartRateCategory
    needs_attention: bool
    description: str

    @property
    def label(self) -> str:
        return self.category.value


class ClassifiedReading(BaseModel):
    model_config = ConfigDict(frozen=True)

    reading: HeartRateReading
    classification: Classification


class ChartPoint(BaseModel):
    """One point of a chart series: a raw reading or a bucket mean."""

    model_config = ConfigDict(frozen=True)

    label: str
    bpm: int
    start: datetime = Field(description="Reading instant or bucket start")
    count: int = Field(ge=1, description="Readings reduced into this point")


class WindowSummary(BaseModel):
    """Chart series and history list for one time window."""

    model_config = ConfigDict(frozen=True)

    window: TimeWindow
    reference: datetime
    series: list[ChartPoint] = Field(default_factory=list)
    history: list[ClassifiedReading] = Field(default_factory=list)
    needs_attention: bool = False


class AdherenceStatus(BaseModel):
    """Today's adherence for one medication."""

    model_config = ConfigDict(frozen=True)

    medication_id: int
    day: date
    state: AdherenceState
    record: MedicationRecord | None = None
    entries_today: int = Field(default=0, ge=0)

    @property
    def is_taken(self) -> bool:
        return self.state is AdherenceState.TAKEN


class DashboardOverview(BaseModel):
    """Figures shown on the dashboard stats cards."""

    model_config = ConfigDict(frozen=True)

    latest_bpm: int | None = None
    latest_category: HeartRateCategory | None = None
    scheduled_today: int = Field(default=0, ge=0)
    taken_today: int = Field(default=0, ge=0)
    missed_today: int = Field(default=0, ge=0)


class AuthState(BaseModel):
    """Signal consumed from the external session provider."""

    model_config = ConfigDict(frozen=True)

    user_id: str | None = None
    is_loading: bool = False
    is_authenticated: bool = False

    @property
    def active_user(self) -> str | None:
        if self.is_loading or not self.is_authenticated:
            return None
        return self.user_id
