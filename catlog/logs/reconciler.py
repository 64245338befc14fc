# -*- coding: utf-8 -*-
"""Daily log reconciler.

A day has no row in the store until something is recorded for it. Every edit
goes through here so that:

- a draft (unsaved, default-valued log) is inserted the moment it moves off
  its defaults,
- a persisted log is deleted the moment an edit brings it back to defaults,
  and the caller gets a fresh draft for the same day,
- the second-dose flag of each medication only exists while that medication
  is given twice a day,
- ``last_modified`` moves forward on every committed edit, which is what
  last-writer-wins sync relies on.

Edits are applied to a copy; the caller's log is only replaced once the store
has accepted the write.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Callable, List, Optional

from .dates import DayLike, normalize_day, utc_now
from .defaults import LogDefaults, is_at_default
from .models import (
    AdjustCoughCount,
    AsthmaMedLog,
    DailyLog,
    FoodEntry,
    Frequency,
    LogEdit,
    Medication,
    MedicationLog,
    PrednisoneLog,
    SetCoughCount,
    SetDoseAdministered,
    SetMedicationDosage,
    SetMedicationFrequency,
    SetMedicationScheduled,
    SetNotes,
    SetSoftFoodTarget,
)
from .storage import LogStore

logger = logging.getLogger(__name__)


class DoseInvariantError(AssertionError):
    """A medication group holds a second-dose flag its frequency does not allow."""


@dataclass
class LogState:
    log: DailyLog
    is_persisted: bool
    # False when the edit was refused and nothing changed.
    applied: bool = True


class DailyLogReconciler:
    def __init__(
        self,
        store: LogStore,
        defaults: Optional[LogDefaults] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        tz: Optional[tzinfo] = None,
        lock_stripes: int = 64,
    ) -> None:
        self.store = store
        self.defaults = defaults or LogDefaults()
        self._clock = clock or utc_now
        self._tz = tz
        # Days share a fixed pool of locks, so memory stays flat however many
        # days are touched.
        self._locks: List[threading.RLock] = [threading.RLock() for _ in range(max(1, lock_stripes))]

    @property
    def tz(self) -> Optional[tzinfo]:
        return self._tz

    # ---- public operations ----

    def get_or_draft(self, day: DayLike) -> LogState:
        key = normalize_day(day, self._tz)
        with self.day_lock(key):
            found = self.store.find(key)
            if found is not None:
                return LogState(found, True)
            return LogState(self.draft(key), False)

    def draft(self, day: DayLike) -> DailyLog:
        return self.defaults.new_log(normalize_day(day, self._tz), self._clock())

    def apply_edit(self, state: LogState, edit: LogEdit) -> LogState:
        with self.day_lock(state.log.day):
            working = state.log.model_copy(deep=True)
            if not self._mutate(working, edit):
                logger.warning("Ignored %s edit for %s", edit.kind, working.day)
                return LogState(state.log, state.is_persisted, applied=False)
            self._check_invariants(working)
            return self._commit(state, working)

    def append_food_entry(
        self,
        state: LogState,
        grams: int,
        timestamp: Optional[datetime] = None,
    ) -> LogState:
        if isinstance(grams, bool) or not isinstance(grams, int) or grams <= 0:
            logger.warning("Ignored food entry of %r grams for %s", grams, state.log.day)
            return LogState(state.log, state.is_persisted, applied=False)
        with self.day_lock(state.log.day):
            working = state.log.model_copy(deep=True)
            working.food_entries.append(FoodEntry(timestamp=timestamp or self._clock(), grams=grams))
            return self._commit(state, working)

    def remove_food_entry(self, state: LogState, entry_id: str) -> LogState:
        with self.day_lock(state.log.day):
            working = state.log.model_copy(deep=True)
            remaining = [e for e in working.food_entries if e.entry_id != entry_id]
            if len(remaining) == len(working.food_entries):
                logger.warning("No food entry %s on %s", entry_id, working.day)
                return LogState(state.log, state.is_persisted, applied=False)
            working.food_entries = remaining
            return self._commit(state, working)

    # Lookup plus edit as one step; this is what request handlers call.

    def edit_day(self, day: DayLike, edit: LogEdit) -> LogState:
        key = normalize_day(day, self._tz)
        with self.day_lock(key):
            return self.apply_edit(self.get_or_draft(key), edit)

    def add_food(self, day: DayLike, grams: int, timestamp: Optional[datetime] = None) -> LogState:
        key = normalize_day(day, self._tz)
        with self.day_lock(key):
            return self.append_food_entry(self.get_or_draft(key), grams, timestamp)

    def remove_food(self, day: DayLike, entry_id: str) -> LogState:
        key = normalize_day(day, self._tz)
        with self.day_lock(key):
            return self.remove_food_entry(self.get_or_draft(key), entry_id)

    # ---- state machine ----

    def _commit(self, state: LogState, working: DailyLog) -> LogState:
        working.last_modified = self._next_timestamp(state.log.last_modified)
        at_default = is_at_default(working, self.defaults)

        if not state.is_persisted:
            if at_default:
                return LogState(working, False)
            self.store.insert(working)
            logger.info("Created log for %s", working.day)
            return LogState(working, True)

        if at_default:
            self.store.delete(working, deleted_at=working.last_modified)
            logger.info("Removed log for %s (back to defaults)", working.day)
            return LogState(self.draft(working.day), False)

        self.store.update(working)
        return LogState(working, True)

    def _next_timestamp(self, previous: datetime) -> datetime:
        now = self._clock()
        if now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    # ---- mutations ----

    def _mutate(self, log: DailyLog, edit: LogEdit) -> bool:
        if isinstance(edit, SetCoughCount):
            log.cough_count = self._clamp_cough(edit.value)
        elif isinstance(edit, AdjustCoughCount):
            log.cough_count = self._clamp_cough(log.cough_count + edit.delta)
        elif isinstance(edit, SetNotes):
            log.notes = edit.value or None
        elif isinstance(edit, SetSoftFoodTarget):
            if edit.value <= 0:
                return False
            log.soft_food_target_grams = edit.value
        elif isinstance(edit, SetMedicationScheduled):
            self._set_scheduled(log, edit.medication, edit.value)
        elif isinstance(edit, SetMedicationDosage):
            group = log.medication(edit.medication)
            if not group.is_scheduled or (edit.value is not None and edit.value <= 0):
                return False
            group.dosage = edit.value
        elif isinstance(edit, SetMedicationFrequency):
            return self._set_frequency(log, edit.medication, edit.value)
        elif isinstance(edit, SetDoseAdministered):
            group = log.medication(edit.medication)
            if group.frequency is None:
                return False
            if edit.dose == 1:
                group.dose1_administered = edit.value
            elif group.frequency is Frequency.twice_a_day:
                group.dose2_administered = edit.value
            else:
                return False
        else:
            raise TypeError(f"Unknown edit: {edit!r}")
        return True

    def _clamp_cough(self, value: int) -> int:
        return max(0, min(value, self.defaults.max_cough_count))

    def _set_scheduled(self, log: DailyLog, which: Medication, scheduled: bool) -> None:
        if not scheduled:
            self._reset_group(log, which)
            return
        group = log.medication(which)
        if isinstance(group, PrednisoneLog):
            group.is_scheduled = True
        if group.frequency is None:
            group.frequency = self.defaults.scheduled_frequency
        if isinstance(group, AsthmaMedLog) and group.dosage is None:
            group.dosage = self.defaults.asthma_med_dosage_puffs
        _align_second_dose(group)

    def _set_frequency(self, log: DailyLog, which: Medication, frequency: Optional[Frequency]) -> bool:
        group = log.medication(which)
        if isinstance(group, PrednisoneLog) and not group.is_scheduled:
            return False
        if isinstance(group, AsthmaMedLog):
            if frequency is None:
                # No frequency means the asthma medication is off.
                self._reset_group(log, which)
                return True
            if not group.is_scheduled and group.dosage is None:
                group.dosage = self.defaults.asthma_med_dosage_puffs
        group.frequency = frequency
        _align_second_dose(group)
        return True

    @staticmethod
    def _reset_group(log: DailyLog, which: Medication) -> None:
        if which is Medication.prednisone:
            log.prednisone = PrednisoneLog()
        else:
            log.asthma_med = AsthmaMedLog()

    # ---- invariants ----

    def _check_invariants(self, log: DailyLog) -> None:
        for which in Medication:
            group = log.medication(which)
            twice = group.frequency is Frequency.twice_a_day
            if twice == (group.dose2_administered is not None):
                continue
            message = (
                f"{which.value} on {log.day}: dose 2 is {group.dose2_administered!r} "
                f"with frequency {group.frequency.value if group.frequency else None!r}"
            )
            if self.defaults.strict_invariants:
                raise DoseInvariantError(message)
            logger.warning("Repaired second-dose flag: %s", message)
            _align_second_dose(group)

    def day_lock(self, day: date) -> threading.RLock:
        """Lock serializing work on ``day``; unrelated days may share one."""
        return self._locks[hash(day) % len(self._locks)]


def _align_second_dose(group: MedicationLog) -> None:
    if group.frequency is Frequency.twice_a_day:
        if group.dose2_administered is None:
            group.dose2_administered = False
    else:
        group.dose2_administered = None
