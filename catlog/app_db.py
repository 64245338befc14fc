# -*- coding: utf-8 -*-
"""App database — SQLite helpers for daily logs, food entries, sync tombstones and the change counter."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _ensure_column(cur: sqlite3.Cursor, table: str, column: str, decl: str) -> None:
    existing = {row[1] for row in cur.execute(f"PRAGMA table_info({table})").fetchall()}
    if column not in existing:
        cur.execute(f"ALTER TABLE {table} ADD COLUMN {column} {decl}")


def init_app_db(db_path: Path) -> None:
    conn = connect(db_path)
    try:
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS daily_logs (
                day TEXT PRIMARY KEY,
                cough_count INTEGER NOT NULL DEFAULT 0 CHECK (cough_count >= 0),
                notes TEXT,
                soft_food_target_grams INTEGER NOT NULL CHECK (soft_food_target_grams > 0),
                prednisone_scheduled INTEGER NOT NULL DEFAULT 0,
                prednisone_dosage_drops INTEGER,
                prednisone_frequency TEXT,
                prednisone_dose1 INTEGER NOT NULL DEFAULT 0,
                prednisone_dose2 INTEGER,
                asthma_med_dosage_puffs INTEGER,
                asthma_med_frequency TEXT,
                asthma_med_dose1 INTEGER NOT NULL DEFAULT 0,
                asthma_med_dose2 INTEGER,
                last_modified TEXT NOT NULL,
                change_seq INTEGER NOT NULL DEFAULT 0
            );
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_daily_logs_last_modified ON daily_logs(last_modified);"
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS food_entries (
                id TEXT PRIMARY KEY,
                day TEXT NOT NULL,
                position INTEGER NOT NULL,
                grams INTEGER NOT NULL CHECK (grams > 0),
                timestamp TEXT NOT NULL,
                FOREIGN KEY(day) REFERENCES daily_logs(day) ON DELETE CASCADE
            );
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_food_entries_day_position ON food_entries(day, position ASC);"
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS deleted_logs (
                day TEXT PRIMARY KEY,
                deleted_at TEXT NOT NULL,
                change_seq INTEGER NOT NULL DEFAULT 0
            );
            """
        )
        # Databases created before change_seq existed.
        for table in ("daily_logs", "deleted_logs"):
            _ensure_column(cur, table, "change_seq", "INTEGER NOT NULL DEFAULT 0")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_daily_logs_change_seq ON daily_logs(change_seq);")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_deleted_logs_change_seq ON deleted_logs(change_seq);")
        # Single-row counter handing out change_seq values, in commit order.
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS change_counter (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                value INTEGER NOT NULL
            );
            """
        )
        cur.execute("INSERT OR IGNORE INTO change_counter (id, value) VALUES (1, 0);")
        conn.commit()
    finally:
        conn.close()


@contextmanager
def db_conn(db_path: Path) -> Iterator[sqlite3.Connection]:
    conn = connect(db_path)
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()
