from __future__ import annotations

import sqlite3
import time
from contextlib import contextmanager
from datetime import datetime

from .config import DB_PATH


def init_db() -> None:
    with sqlite3.connect(DB_PATH) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS dispatches (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                ambulance_id TEXT NOT NULL,
                target_latitude REAL NOT NULL,
                target_longitude REAL NOT NULL,
                latitude REAL NOT NULL,
                longitude REAL NOT NULL,
                distance_km REAL NOT NULL,
                eta_minutes INTEGER NOT NULL,
                status TEXT NOT NULL DEFAULT 'dispatched',
                assigned_at_ms INTEGER NOT NULL,
                last_tick_ms INTEGER NOT NULL,
                cancelled INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS status_transitions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                dispatch_id INTEGER NOT NULL,
                status TEXT NOT NULL,
                at_ms INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY(dispatch_id) REFERENCES dispatches(id)
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS audit_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                dispatch_id INTEGER,
                action TEXT NOT NULL,
                ip_address TEXT,
                details TEXT,
                created_at TEXT NOT NULL
            )
            """
        )


@contextmanager
def get_conn():
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def now_iso() -> str:
    return datetime.utcnow().isoformat()


def now_ms() -> int:
    return int(time.time() * 1000)
