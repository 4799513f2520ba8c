"""
Tests for the idempotent schema migration.
"""

import sqlite3

import pytest

from focusflow.store.database import Database


def _columns(path, table):
    with sqlite3.connect(str(path)) as conn:
        return {row[1] for row in conn.execute(f'PRAGMA table_info("{table}")')}


def test_migrate_twice_is_harmless(tmp_path):
    db = Database(tmp_path / "f.db")
    db.migrate()
    with db.connect() as conn:
        conn.execute('INSERT INTO "User" (id, name, email) VALUES (?, ?, ?)', ("u1", "U", "u@x"))
    db.migrate()
    with db.connect() as conn:
        assert conn.execute('SELECT COUNT(*) FROM "User"').fetchone()[0] == 1


def test_migrate_upgrades_older_tables(tmp_path):
    path = tmp_path / "old.db"
    with sqlite3.connect(str(path)) as conn:
        conn.execute(
            'CREATE TABLE "FocusSession" (id TEXT PRIMARY KEY, name TEXT NOT NULL, '
            "created_at REAL NOT NULL, started_at REAL, ended_at REAL)"
        )
        conn.execute(
            'INSERT INTO "FocusSession" (id, name, created_at) VALUES (?, ?, ?)', ("s1", "old", 1.0)
        )
    Database(path).migrate()

    columns = _columns(path, "FocusSession")
    assert {"admin_user_id", "goal", "recap", "team_session_id", "duration_seconds"} <= columns
    with sqlite3.connect(str(path)) as conn:
        assert conn.execute('SELECT name FROM "FocusSession"').fetchone()[0] == "old"


def test_one_entry_per_user_and_session(db):
    with db.connect() as conn:
        conn.execute('INSERT INTO "FocusSession" (id, name, created_at) VALUES (?, ?, ?)', ("s1", "n", 1.0))
        conn.execute(
            'INSERT INTO "UserInSession" (focus_session_id, user_id, user_name, goal) VALUES (?, ?, ?, ?)',
            ("s1", "u1", "U", "g"),
        )
    with pytest.raises(sqlite3.IntegrityError):
        with db.connect() as conn:
            conn.execute(
                'INSERT INTO "UserInSession" (focus_session_id, user_id, user_name, goal) VALUES (?, ?, ?, ?)',
                ("s1", "u1", "U", "again"),
            )
