# -*- coding: utf-8 -*-
"""Daily logs — API endpoints."""

from __future__ import annotations

from datetime import date
from typing import Callable, List, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query

from .dates import iter_days, month_bounds, normalize_day
from .models import (
    CalendarDay,
    CalendarMonthResponse,
    DailyLogResponse,
    DailyLogsResponse,
    DailyLogView,
    FoodEntryCreateRequest,
    LogEditRequest,
)
from .reconciler import DailyLogReconciler, LogState
from .service import get_reconciler
from .storage import DuplicateLogError, LogStoreError

router = APIRouter(prefix="/api/logs", tags=["Daily logs"])

T = TypeVar("T")


def _day_or_400(raw: str, reconciler: DailyLogReconciler) -> date:
    try:
        return normalize_day(raw, reconciler.tz)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid day: {raw}") from exc


def _store_call(fn: Callable[..., T], *args) -> T:
    try:
        return fn(*args)
    except DuplicateLogError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except LogStoreError as exc:
        raise HTTPException(status_code=503, detail=f"Log store unavailable: {exc}") from exc


def _response(state: LogState) -> DailyLogResponse:
    return DailyLogResponse(
        log=DailyLogView.from_log(state.log),
        is_persisted=state.is_persisted,
        applied=state.applied,
    )


@router.get("", response_model=DailyLogsResponse, summary="List recorded days in a range")
def list_logs(
    start: str = Query(..., description="YYYY-MM-DD"),
    end: str = Query(..., description="YYYY-MM-DD"),
    reconciler: DailyLogReconciler = Depends(get_reconciler),
):
    start_day = _day_or_400(start, reconciler)
    end_day = _day_or_400(end, reconciler)
    if end_day < start_day:
        raise HTTPException(status_code=400, detail="end must not be before start")
    logs = _store_call(reconciler.store.list_range, start_day, end_day)
    return DailyLogsResponse(
        start=start_day.isoformat(),
        end=end_day.isoformat(),
        count=len(logs),
        logs=[DailyLogView.from_log(log) for log in logs],
    )


@router.get("/calendar/{year}/{month}", response_model=CalendarMonthResponse, summary="Per-day overview of a month")
def calendar_month(
    year: int,
    month: int,
    reconciler: DailyLogReconciler = Depends(get_reconciler),
):
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        raise HTTPException(status_code=400, detail="Invalid month")
    first, last = month_bounds(year, month)
    by_day = {log.day: log for log in _store_call(reconciler.store.list_range, first, last)}

    days: List[CalendarDay] = []
    for d in iter_days(first, last):
        log = by_day.get(d)
        if log is None:
            days.append(CalendarDay(date=d.isoformat()))
            continue
        days.append(
            CalendarDay(
                date=d.isoformat(),
                has_log=True,
                cough_count=log.cough_count,
                prednisone_scheduled=log.prednisone.is_scheduled,
                asthma_med_scheduled=log.asthma_med.is_scheduled,
            )
        )
    return CalendarMonthResponse(year=year, month=month, days=days)


@router.get("/{day}", response_model=DailyLogResponse, summary="Stored log for a day, or a default draft")
def get_log(day: str, reconciler: DailyLogReconciler = Depends(get_reconciler)):
    key = _day_or_400(day, reconciler)
    return _response(_store_call(reconciler.get_or_draft, key))


@router.post("/{day}/edits", response_model=DailyLogResponse, summary="Apply one field edit to a day")
def edit_log(day: str, request: LogEditRequest, reconciler: DailyLogReconciler = Depends(get_reconciler)):
    key = _day_or_400(day, reconciler)
    return _response(_store_call(reconciler.edit_day, key, request.edit))


@router.post("/{day}/food", response_model=DailyLogResponse, summary="Log a soft food feeding")
def add_food(day: str, request: FoodEntryCreateRequest, reconciler: DailyLogReconciler = Depends(get_reconciler)):
    key = _day_or_400(day, reconciler)
    return _response(_store_call(reconciler.add_food, key, request.grams, request.timestamp))


@router.delete("/{day}/food/{entry_id}", response_model=DailyLogResponse, summary="Remove a soft food feeding")
def remove_food(day: str, entry_id: str, reconciler: DailyLogReconciler = Depends(get_reconciler)):
    key = _day_or_400(day, reconciler)
    state = _store_call(reconciler.remove_food, key, entry_id)
    if not state.applied:
        raise HTTPException(status_code=404, detail="Food entry not found")
    return _response(state)
