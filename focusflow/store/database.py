"""
SQLite database handle and the idempotent schema migration.

Stores share one Database; each unit of work opens its own connection via
``Database.connect()`` which commits on success and always closes.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List

logger = logging.getLogger(__name__)


_TABLES: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS "User" (
        id      TEXT PRIMARY KEY,
        name    TEXT,
        email   TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS "Membership" (
        id        INTEGER PRIMARY KEY AUTOINCREMENT,
        group_id  TEXT NOT NULL,
        user_id   TEXT NOT NULL,
        role      TEXT NOT NULL DEFAULT 'member',
        UNIQUE (group_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS "TeamFocusSession" (
        id          TEXT PRIMARY KEY,
        created_at  REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS "FocusSession" (
        id                TEXT PRIMARY KEY,
        name              TEXT NOT NULL,
        admin_user_id     TEXT,
        duration_seconds  INTEGER,
        goal              TEXT,
        recap             TEXT,
        team_session_id   TEXT REFERENCES "TeamFocusSession"(id) ON DELETE SET NULL,
        created_at        REAL NOT NULL,
        started_at        REAL,
        ended_at          REAL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS "UserInSession" (
        id                      INTEGER PRIMARY KEY AUTOINCREMENT,
        focus_session_id        TEXT NOT NULL REFERENCES "FocusSession"(id) ON DELETE CASCADE,
        user_id                 TEXT,
        user_name               TEXT NOT NULL,
        goal                    TEXT NOT NULL,
        recap                   TEXT,
        break_active            INTEGER NOT NULL DEFAULT 0,
        break_started_at        REAL,
        break_ends_at           REAL,
        break_relaxations_used  INTEGER NOT NULL DEFAULT 0,
        break_paused_seconds    INTEGER NOT NULL DEFAULT 0,
        break_escalated_at      REAL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS "UserHiddenSession" (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id     TEXT NOT NULL,
        session_id  TEXT NOT NULL REFERENCES "FocusSession"(id) ON DELETE CASCADE,
        created_at  REAL NOT NULL,
        UNIQUE (user_id, session_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS "UserFocusState" (
        user_id            TEXT PRIMARY KEY,
        last_activity_at   REAL,
        focus_score        INTEGER NOT NULL DEFAULT 80,
        reliability_score  INTEGER NOT NULL DEFAULT 100,
        overdue_count      INTEGER NOT NULL DEFAULT 0,
        last_overdue_at    REAL,
        updated_at         REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS "UserFocusScoreLog" (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id     TEXT NOT NULL,
        score       INTEGER NOT NULL,
        created_at  REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS "UserGamification" (
        user_id            TEXT PRIMARY KEY,
        total_points       INTEGER NOT NULL DEFAULT 0,
        current_streak     INTEGER NOT NULL DEFAULT 0,
        longest_streak     INTEGER NOT NULL DEFAULT 0,
        last_session_date  TEXT,
        updated_at         REAL NOT NULL
    )
    """,
]

# Columns added after the first release; older databases get them on migrate().
_LATE_COLUMNS: Dict[str, Dict[str, str]] = {
    "FocusSession": {
        "admin_user_id": "TEXT",
        "goal": "TEXT",
        "recap": "TEXT",
        "team_session_id": "TEXT",
        "duration_seconds": "INTEGER",
    },
    "UserInSession": {
        "break_active": "INTEGER NOT NULL DEFAULT 0",
        "break_started_at": "REAL",
        "break_ends_at": "REAL",
        "break_relaxations_used": "INTEGER NOT NULL DEFAULT 0",
        "break_paused_seconds": "INTEGER NOT NULL DEFAULT 0",
        "break_escalated_at": "REAL",
    },
    "UserFocusState": {
        "reliability_score": "INTEGER NOT NULL DEFAULT 100",
        "overdue_count": "INTEGER NOT NULL DEFAULT 0",
        "last_overdue_at": "REAL",
    },
}

_INDEXES: List[str] = [
    'CREATE UNIQUE INDEX IF NOT EXISTS idx_uis_session_user ON "UserInSession"(focus_session_id, user_id)',
    'CREATE INDEX IF NOT EXISTS idx_uis_user ON "UserInSession"(user_id)',
    'CREATE INDEX IF NOT EXISTS idx_uis_break_due ON "UserInSession"(break_active, break_ends_at)',
    'CREATE INDEX IF NOT EXISTS idx_fs_started ON "FocusSession"(started_at)',
    'CREATE INDEX IF NOT EXISTS idx_fs_team ON "FocusSession"(team_session_id)',
    'CREATE INDEX IF NOT EXISTS idx_hidden_user ON "UserHiddenSession"(user_id)',
    'CREATE INDEX IF NOT EXISTS idx_score_log_user ON "UserFocusScoreLog"(user_id, created_at)',
    'CREATE INDEX IF NOT EXISTS idx_membership_group ON "Membership"(group_id, role)',
]


class Database:
    """Thin wrapper around a SQLite file shared by all stores."""

    def __init__(self, db_path: Path):
        self.db_path = db_path

    def migrate(self) -> None:
        """Create or upgrade the schema. Safe to run any number of times."""
        with self.connect() as conn:
            for ddl in _TABLES:
                conn.execute(ddl)
            for table, columns in _LATE_COLUMNS.items():
                _ensure_columns(conn, table, columns)
            for ddl in _INDEXES:
                conn.execute(ddl)
        logger.info("Schema ready at %s", self.db_path)

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()


def _ensure_columns(conn: sqlite3.Connection, table: str, columns: Dict[str, str]) -> None:
    # SQLite has no ADD COLUMN IF NOT EXISTS
    existing = {row["name"] for row in conn.execute(f'PRAGMA table_info("{table}")')}
    for name, ddl in columns.items():
        if name not in existing:
            conn.execute(f'ALTER TABLE "{table}" ADD COLUMN {name} {ddl}')
            logger.info("Added column %s.%s", table, name)
