# -*- coding: utf-8 -*-
"""Daily logs — SQLite record store keyed by day."""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

from ..app_db import db_conn
from .models import AsthmaMedLog, DailyLog, FoodEntry, Frequency, PrednisoneLog

logger = logging.getLogger(__name__)


class LogStoreError(RuntimeError):
    """The record store could not complete a read or write."""


class DuplicateLogError(LogStoreError):
    """A log for this day is already persisted."""


class LogStore(Protocol):
    def find(self, day: date) -> Optional[DailyLog]: ...

    def insert(self, log: DailyLog) -> None: ...

    def update(self, log: DailyLog) -> None: ...

    def delete(self, log: DailyLog, deleted_at: Optional[datetime] = None) -> None: ...


class SyncableLogStore(LogStore, Protocol):
    def put(self, log: DailyLog) -> None: ...

    def tombstone(self, day: date) -> Optional[datetime]: ...

    def change_cursor(self) -> int: ...

    def changed_after(self, cursor: int) -> List[DailyLog]: ...

    def deleted_after(self, cursor: int) -> List[Tuple[date, datetime]]: ...


def _iso_date(day: date) -> str:
    return day.isoformat()


def _bool_or_none(value: Any) -> Optional[bool]:
    if value is None:
        return None
    return bool(value)


def _int_or_none(value: Optional[bool]) -> Optional[int]:
    if value is None:
        return None
    return 1 if value else 0


def _log_columns(log: DailyLog) -> Tuple[Any, ...]:
    p = log.prednisone
    a = log.asthma_med
    return (
        log.cough_count,
        log.notes,
        log.soft_food_target_grams,
        1 if p.is_scheduled else 0,
        p.dosage,
        p.frequency.value if p.frequency else None,
        1 if p.dose1_administered else 0,
        _int_or_none(p.dose2_administered),
        a.dosage,
        a.frequency.value if a.frequency else None,
        1 if a.dose1_administered else 0,
        _int_or_none(a.dose2_administered),
        log.last_modified.isoformat(),
    )


def _row_to_log(row: Dict[str, Any], entries: List[FoodEntry]) -> DailyLog:
    return DailyLog(
        day=date.fromisoformat(row["day"]),
        cough_count=int(row["cough_count"] or 0),
        notes=row.get("notes"),
        soft_food_target_grams=int(row["soft_food_target_grams"]),
        food_entries=entries,
        prednisone=PrednisoneLog(
            is_scheduled=bool(row["prednisone_scheduled"]),
            dosage=row.get("prednisone_dosage_drops"),
            frequency=Frequency(row["prednisone_frequency"]) if row.get("prednisone_frequency") else None,
            dose1_administered=bool(row["prednisone_dose1"]),
            dose2_administered=_bool_or_none(row.get("prednisone_dose2")),
        ),
        asthma_med=AsthmaMedLog(
            dosage=row.get("asthma_med_dosage_puffs"),
            frequency=Frequency(row["asthma_med_frequency"]) if row.get("asthma_med_frequency") else None,
            dose1_administered=bool(row["asthma_med_dose1"]),
            dose2_administered=_bool_or_none(row.get("asthma_med_dose2")),
        ),
        last_modified=datetime.fromisoformat(row["last_modified"]),
    )


_INSERT_LOG = """
    INSERT INTO daily_logs (
        day, cough_count, notes, soft_food_target_grams,
        prednisone_scheduled, prednisone_dosage_drops, prednisone_frequency,
        prednisone_dose1, prednisone_dose2,
        asthma_med_dosage_puffs, asthma_med_frequency, asthma_med_dose1, asthma_med_dose2,
        last_modified, change_seq
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

_UPDATE_LOG = """
    UPDATE daily_logs SET
        cough_count = ?, notes = ?, soft_food_target_grams = ?,
        prednisone_scheduled = ?, prednisone_dosage_drops = ?, prednisone_frequency = ?,
        prednisone_dose1 = ?, prednisone_dose2 = ?,
        asthma_med_dosage_puffs = ?, asthma_med_frequency = ?, asthma_med_dose1 = ?, asthma_med_dose2 = ?,
        last_modified = ?, change_seq = ?
    WHERE day = ?
"""


class SQLiteLogStore:
    """Keyed CRUD over ``daily_logs`` with food entries cascading on delete.

    Every delete leaves a tombstone in ``deleted_logs`` so that other devices
    can learn about the removal; writing the day again clears it.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    # ---- reads ----

    def find(self, day: date) -> Optional[DailyLog]:
        try:
            with db_conn(self.db_path) as conn:
                row = conn.execute("SELECT * FROM daily_logs WHERE day = ?", (_iso_date(day),)).fetchone()
                if not row:
                    return None
                entries = self._load_entries(conn, "day = ?", (row["day"],))
        except sqlite3.Error as exc:
            raise LogStoreError(f"Failed to read log {day}: {exc}") from exc
        return _row_to_log(dict(row), entries.get(row["day"], []))

    def list_range(self, start: date, end: date) -> List[DailyLog]:
        try:
            with db_conn(self.db_path) as conn:
                rows = conn.execute(
                    "SELECT * FROM daily_logs WHERE day >= ? AND day <= ? ORDER BY day ASC",
                    (_iso_date(start), _iso_date(end)),
                ).fetchall()
                entries = self._load_entries(
                    conn, "day >= ? AND day <= ?", (_iso_date(start), _iso_date(end))
                )
        except sqlite3.Error as exc:
            raise LogStoreError(f"Failed to list logs: {exc}") from exc
        return [_row_to_log(dict(r), entries.get(r["day"], [])) for r in rows]

    def change_cursor(self) -> int:
        """Sequence number of the most recent committed write."""
        try:
            with db_conn(self.db_path) as conn:
                row = conn.execute("SELECT value FROM change_counter WHERE id = 1").fetchone()
        except sqlite3.Error as exc:
            raise LogStoreError(f"Failed to read change cursor: {exc}") from exc
        return int(row["value"]) if row else 0

    def changed_after(self, cursor: int) -> List[DailyLog]:
        """Logs written (by any device) after ``cursor``, whatever their ``last_modified``."""
        try:
            with db_conn(self.db_path) as conn:
                rows = conn.execute(
                    "SELECT * FROM daily_logs WHERE change_seq > ? ORDER BY day ASC", (cursor,)
                ).fetchall()
                entries = self._load_entries(
                    conn, "day IN (SELECT day FROM daily_logs WHERE change_seq > ?)", (cursor,)
                )
        except sqlite3.Error as exc:
            raise LogStoreError(f"Failed to list changes: {exc}") from exc
        return [_row_to_log(dict(r), entries.get(r["day"], [])) for r in rows]

    def deleted_after(self, cursor: int) -> List[Tuple[date, datetime]]:
        try:
            with db_conn(self.db_path) as conn:
                rows = conn.execute(
                    "SELECT day, deleted_at FROM deleted_logs WHERE change_seq > ? ORDER BY day ASC",
                    (cursor,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise LogStoreError(f"Failed to list deletions: {exc}") from exc
        return [(date.fromisoformat(r["day"]), datetime.fromisoformat(r["deleted_at"])) for r in rows]

    def tombstone(self, day: date) -> Optional[datetime]:
        try:
            with db_conn(self.db_path) as conn:
                row = conn.execute(
                    "SELECT deleted_at FROM deleted_logs WHERE day = ?", (_iso_date(day),)
                ).fetchone()
        except sqlite3.Error as exc:
            raise LogStoreError(f"Failed to read tombstone {day}: {exc}") from exc
        return datetime.fromisoformat(row["deleted_at"]) if row else None

    # ---- writes ----

    def insert(self, log: DailyLog) -> None:
        key = _iso_date(log.day)
        try:
            with db_conn(self.db_path) as conn:
                seq = self._next_seq(conn)
                conn.execute(_INSERT_LOG, (key, *_log_columns(log), seq))
                self._write_entries(conn, key, log.food_entries)
                conn.execute("DELETE FROM deleted_logs WHERE day = ?", (key,))
        except sqlite3.IntegrityError as exc:
            if "UNIQUE" not in str(exc):
                raise LogStoreError(f"Failed to insert log {key}: {exc}") from exc
            raise DuplicateLogError(f"A log for {key} already exists") from exc
        except sqlite3.Error as exc:
            raise LogStoreError(f"Failed to insert log {key}: {exc}") from exc
        logger.debug("Inserted log %s", key)

    def update(self, log: DailyLog) -> None:
        key = _iso_date(log.day)
        try:
            with db_conn(self.db_path) as conn:
                seq = self._next_seq(conn)
                cur = conn.execute(_UPDATE_LOG, (*_log_columns(log), seq, key))
                if cur.rowcount == 0:
                    raise LogStoreError(f"Log {key} is not persisted")
                conn.execute("DELETE FROM food_entries WHERE day = ?", (key,))
                self._write_entries(conn, key, log.food_entries)
        except sqlite3.Error as exc:
            raise LogStoreError(f"Failed to update log {key}: {exc}") from exc

    def put(self, log: DailyLog) -> None:
        """Insert or fully replace the log for ``log.day``."""
        key = _iso_date(log.day)
        try:
            with db_conn(self.db_path) as conn:
                seq = self._next_seq(conn)
                conn.execute("DELETE FROM daily_logs WHERE day = ?", (key,))
                conn.execute(_INSERT_LOG, (key, *_log_columns(log), seq))
                self._write_entries(conn, key, log.food_entries)
                conn.execute("DELETE FROM deleted_logs WHERE day = ?", (key,))
        except sqlite3.Error as exc:
            raise LogStoreError(f"Failed to store log {key}: {exc}") from exc

    def delete(self, log: DailyLog, deleted_at: Optional[datetime] = None) -> None:
        key = _iso_date(log.day)
        stamp = (deleted_at or log.last_modified).isoformat()
        try:
            with db_conn(self.db_path) as conn:
                seq = self._next_seq(conn)
                # food_entries rows go with it (ON DELETE CASCADE).
                conn.execute("DELETE FROM daily_logs WHERE day = ?", (key,))
                conn.execute(
                    "INSERT OR REPLACE INTO deleted_logs (day, deleted_at, change_seq) VALUES (?, ?, ?)",
                    (key, stamp, seq),
                )
        except sqlite3.Error as exc:
            raise LogStoreError(f"Failed to delete log {key}: {exc}") from exc
        logger.debug("Deleted log %s", key)

    # ---- helpers ----

    @staticmethod
    def _next_seq(conn: sqlite3.Connection) -> int:
        # Must be the first write of the transaction: it takes the write lock,
        # so sequence numbers follow commit order.
        conn.execute("UPDATE change_counter SET value = value + 1 WHERE id = 1")
        return int(conn.execute("SELECT value FROM change_counter WHERE id = 1").fetchone()["value"])

    @staticmethod
    def _load_entries(conn: sqlite3.Connection, where: str, params: Tuple[Any, ...]) -> Dict[str, List[FoodEntry]]:
        """Entries grouped by day, in insertion order, for the days matched by ``where``."""
        out: Dict[str, List[FoodEntry]] = {}
        rows = conn.execute(
            f"SELECT * FROM food_entries WHERE {where} ORDER BY day ASC, position ASC", params
        ).fetchall()
        for r in rows:
            out.setdefault(r["day"], []).append(
                FoodEntry(
                    entry_id=r["id"],
                    timestamp=datetime.fromisoformat(r["timestamp"]),
                    grams=int(r["grams"]),
                )
            )
        return out

    @staticmethod
    def _write_entries(conn: sqlite3.Connection, day_key: str, entries: List[FoodEntry]) -> None:
        conn.executemany(
            "INSERT INTO food_entries (id, day, position, grams, timestamp) VALUES (?, ?, ?, ?, ?)",
            [
                (e.entry_id, day_key, idx, e.grams, e.timestamp.isoformat())
                for idx, e in enumerate(entries)
            ],
        )
