# -*- coding: utf-8 -*-
"""Day keys: normalization of calendar inputs to a single ``date`` per day."""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import List, Optional, Union
from zoneinfo import ZoneInfo

DayLike = Union[date, datetime, str]


def local_zone(name: Optional[str] = None) -> Optional[tzinfo]:
    if not name:
        return None
    return ZoneInfo(name)


def normalize_day(value: DayLike, tz: Optional[tzinfo] = None) -> date:
    """Collapse a date, datetime or ISO string onto its local calendar day.

    Aware datetimes are shifted into ``tz`` (host local time when ``tz`` is
    None) before truncation; naive ones are taken as already local.
    """
    if isinstance(value, str):
        value = _parse_iso(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz) if tz is not None else value.astimezone()
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Unsupported day value: {value!r}")


def _parse_iso(raw: str) -> Union[date, datetime]:
    text = raw.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iter_days(start: date, end: date) -> List[date]:
    if end < start:
        return []
    days: List[date] = []
    cur = start
    while cur <= end:
        days.append(cur)
        cur = cur + timedelta(days=1)
    return days


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)
