# -*- coding: utf-8 -*-
"""Daily logs — Pydantic models."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

DEFAULT_SOFT_FOOD_TARGET_GRAMS = 300


class Frequency(str, Enum):
    once_a_day = "onceADay"
    twice_a_day = "twiceADay"


class Medication(str, Enum):
    prednisone = "prednisone"
    asthma_med = "asthma_med"


class FoodEntry(BaseModel):
    entry_id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime
    grams: int = Field(..., gt=0)

    @field_validator("timestamp")
    @classmethod
    def _assume_local_time(cls, value: datetime) -> datetime:
        # Naive client clocks are taken as local wall time.
        return value.astimezone() if value.tzinfo is None else value


class MedicationLog(BaseModel):
    """Shared shape of a medication group.

    ``dose2_administered`` only carries a value while the group is given twice a
    day; any other frequency keeps it ``None``.
    """

    dosage: Optional[int] = Field(None, gt=0)
    frequency: Optional[Frequency] = None
    dose1_administered: bool = False
    dose2_administered: Optional[bool] = None

    @model_validator(mode="after")
    def _align_second_dose(self) -> "MedicationLog":
        # Stored rows and remote snapshots are repaired on load.
        if self.frequency is Frequency.twice_a_day:
            if self.dose2_administered is None:
                self.dose2_administered = False
        elif self.dose2_administered is not None:
            self.dose2_administered = None
        return self

    def is_at_default(self) -> bool:
        return (
            not self.is_scheduled
            and self.dosage is None
            and self.frequency is None
            and self.dose1_administered is False
            and self.dose2_administered is None
        )


class PrednisoneLog(MedicationLog):
    """Prednisone eye drops; scheduling is an explicit switch."""

    is_scheduled: bool = False
    dosage: Optional[int] = Field(None, gt=0, description="Drops per dose")


class AsthmaMedLog(MedicationLog):
    """Inhaled asthma medication; scheduled whenever a frequency is set."""

    dosage: Optional[int] = Field(None, gt=0, description="Puffs per dose")

    @computed_field  # type: ignore[misc]
    @property
    def is_scheduled(self) -> bool:
        return self.frequency is not None


class DailyLog(BaseModel):
    day: date = Field(..., frozen=True)
    cough_count: int = Field(0, ge=0)
    notes: Optional[str] = None
    soft_food_target_grams: int = Field(DEFAULT_SOFT_FOOD_TARGET_GRAMS, gt=0)
    food_entries: List[FoodEntry] = Field(default_factory=list)
    prednisone: PrednisoneLog = Field(default_factory=PrednisoneLog)
    asthma_med: AsthmaMedLog = Field(default_factory=AsthmaMedLog)
    last_modified: datetime

    @field_validator("last_modified")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_validator("notes", mode="before")
    @classmethod
    def _empty_notes_to_none(cls, value: object) -> object:
        if isinstance(value, str) and value == "":
            return None
        return value

    @computed_field  # type: ignore[misc]
    @property
    def soft_food_given_grams(self) -> int:
        return sum(entry.grams for entry in self.food_entries)

    @computed_field  # type: ignore[misc]
    @property
    def food_remaining_grams(self) -> int:
        return self.soft_food_target_grams - self.soft_food_given_grams

    def medication(self, which: Medication) -> MedicationLog:
        if which is Medication.prednisone:
            return self.prednisone
        return self.asthma_med

    def entries_newest_first(self) -> List[FoodEntry]:
        return sorted(self.food_entries, key=lambda e: e.timestamp, reverse=True)


# ---- Edits ----


class SetCoughCount(BaseModel):
    kind: Literal["cough_count"] = "cough_count"
    value: int = Field(..., ge=0)


class AdjustCoughCount(BaseModel):
    kind: Literal["cough_delta"] = "cough_delta"
    delta: int


class SetNotes(BaseModel):
    kind: Literal["notes"] = "notes"
    value: Optional[str] = Field(None, max_length=5000)


class SetSoftFoodTarget(BaseModel):
    kind: Literal["soft_food_target"] = "soft_food_target"
    value: int = Field(..., gt=0)


class SetMedicationScheduled(BaseModel):
    kind: Literal["medication_scheduled"] = "medication_scheduled"
    medication: Medication
    value: bool


class SetMedicationDosage(BaseModel):
    kind: Literal["medication_dosage"] = "medication_dosage"
    medication: Medication
    value: Optional[int] = Field(None, gt=0)


class SetMedicationFrequency(BaseModel):
    kind: Literal["medication_frequency"] = "medication_frequency"
    medication: Medication
    value: Optional[Frequency] = None


class SetDoseAdministered(BaseModel):
    kind: Literal["dose_administered"] = "dose_administered"
    medication: Medication
    dose: Literal[1, 2]
    value: bool


LogEdit = Annotated[
    Union[
        SetCoughCount,
        AdjustCoughCount,
        SetNotes,
        SetSoftFoodTarget,
        SetMedicationScheduled,
        SetMedicationDosage,
        SetMedicationFrequency,
        SetDoseAdministered,
    ],
    Field(discriminator="kind"),
]


# ---- API payloads ----


class LogEditRequest(BaseModel):
    edit: LogEdit


class FoodEntryCreateRequest(BaseModel):
    grams: int = Field(..., gt=0, description="Soft food given, in grams")
    timestamp: Optional[datetime] = Field(None, description="ISO8601; defaults to now")


class DailyLogView(DailyLog):
    """Read-only projection handed to clients; entries newest first."""

    @classmethod
    def from_log(cls, log: DailyLog) -> "DailyLogView":
        data = log.model_dump()
        data["food_entries"] = [e.model_dump() for e in log.entries_newest_first()]
        return cls.model_validate(data)


class DailyLogResponse(BaseModel):
    log: DailyLogView
    is_persisted: bool
    applied: bool = True


class DailyLogsResponse(BaseModel):
    start: str
    end: str
    count: int
    logs: List[DailyLogView]


class CalendarDay(BaseModel):
    date: str = Field(..., description="YYYY-MM-DD")
    has_log: bool = False
    cough_count: int = Field(0, ge=0)
    prednisone_scheduled: bool = False
    asthma_med_scheduled: bool = False


class CalendarMonthResponse(BaseModel):
    year: int
    month: int = Field(..., ge=1, le=12)
    days: List[CalendarDay]
