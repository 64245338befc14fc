# -*- coding: utf-8 -*-
"""Process-wide reconciler wired from settings."""

from __future__ import annotations

import threading
from typing import Optional

from ..config import settings
from .dates import local_zone
from .defaults import LogDefaults
from .reconciler import DailyLogReconciler
from .storage import SQLiteLogStore

_reconciler: Optional[DailyLogReconciler] = None
_guard = threading.Lock()


def get_reconciler() -> DailyLogReconciler:
    global _reconciler
    with _guard:
        if _reconciler is None:
            _reconciler = DailyLogReconciler(
                SQLiteLogStore(settings.db_path),
                LogDefaults.from_settings(settings),
                tz=local_zone(settings.timezone),
            )
        return _reconciler
