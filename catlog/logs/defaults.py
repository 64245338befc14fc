# -*- coding: utf-8 -*-
"""Baseline values of a daily log and the "is this day still empty" predicate."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from .models import DEFAULT_SOFT_FOOD_TARGET_GRAMS, AsthmaMedLog, DailyLog, Frequency, PrednisoneLog


@dataclass(frozen=True)
class LogDefaults:
    soft_food_target_grams: int = DEFAULT_SOFT_FOOD_TARGET_GRAMS
    max_cough_count: int = 100
    # Frequency picked when a medication is switched on without one.
    scheduled_frequency: Frequency = Frequency.once_a_day
    # Pre-filled puffs when the asthma medication is switched on.
    asthma_med_dosage_puffs: Optional[int] = 3
    strict_invariants: bool = False

    @classmethod
    def from_settings(cls, settings) -> "LogDefaults":
        return cls(
            soft_food_target_grams=settings.soft_food_target_grams,
            max_cough_count=settings.max_cough_count,
            asthma_med_dosage_puffs=settings.asthma_med_dosage_puffs or None,
            strict_invariants=settings.strict_invariants,
        )

    def new_log(self, day: date, last_modified: datetime) -> DailyLog:
        return DailyLog(
            day=day,
            soft_food_target_grams=self.soft_food_target_grams,
            prednisone=PrednisoneLog(),
            asthma_med=AsthmaMedLog(),
            last_modified=last_modified,
        )


def is_at_default(log: DailyLog, defaults: LogDefaults) -> bool:
    return (
        log.cough_count == 0
        and not log.notes
        and not log.food_entries
        and log.soft_food_target_grams == defaults.soft_food_target_grams
        and log.prednisone.is_at_default()
        and log.asthma_med.is_at_default()
    )
