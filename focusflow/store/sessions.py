"""
Session Store: durable FocusSession and UserInSession (participant) rows.

Every mutation is a single statement. Writes whose legality depends on the
current row state carry that condition in their WHERE clause and report
whether a row was changed, so callers can tell a lost race from success.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import List, Optional

from .database import Database


@dataclass
class FocusSession:
    id: str
    name: str
    admin_user_id: Optional[str]
    duration_seconds: Optional[int]
    goal: Optional[str]
    recap: Optional[str]
    team_session_id: Optional[str]
    created_at: float
    started_at: Optional[float]
    ended_at: Optional[float]

    @property
    def is_ended(self) -> bool:
        return self.ended_at is not None


@dataclass
class Participant:
    id: int
    focus_session_id: str
    user_id: Optional[str]
    user_name: str
    goal: str
    recap: Optional[str]
    break_active: bool
    break_started_at: Optional[float]
    break_ends_at: Optional[float]
    break_relaxations_used: int
    break_paused_seconds: int
    break_escalated_at: Optional[float]


@dataclass
class SessionListItem:
    id: str
    name: str
    admin_user_id: Optional[str]
    created_at: float
    started_at: Optional[float]
    ended_at: Optional[float]
    duration_seconds: Optional[int]
    participant_count: int
    is_admin: bool


_SESSION_COLUMNS = (
    "id, name, admin_user_id, duration_seconds, goal, recap, team_session_id, "
    "created_at, started_at, ended_at"
)
_PARTICIPANT_COLUMNS = (
    "id, focus_session_id, user_id, user_name, goal, recap, break_active, "
    "break_started_at, break_ends_at, break_relaxations_used, "
    "break_paused_seconds, break_escalated_at"
)


class SessionStore:

    def __init__(self, db: Database):
        self._db = db

    # ------------------------------------------------------------------
    # FocusSession
    # ------------------------------------------------------------------

    def ensure_team_session(self, team_session_id: str, now: float) -> None:
        with self._db.connect() as conn:
            conn.execute(
                'INSERT INTO "TeamFocusSession" (id, created_at) VALUES (?, ?) '
                "ON CONFLICT (id) DO NOTHING",
                (team_session_id, now),
            )

    def create_session(
        self,
        session_id: str,
        name: str,
        admin_user_id: str,
        duration_seconds: Optional[int],
        team_session_id: Optional[str],
        now: float,
    ) -> FocusSession:
        with self._db.connect() as conn:
            row = conn.execute(
                f"""
                INSERT INTO "FocusSession"
                    (id, name, admin_user_id, duration_seconds, team_session_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                RETURNING {_SESSION_COLUMNS}
                """,
                (session_id, name, admin_user_id, duration_seconds, team_session_id, now),
            ).fetchone()
        return _session(row)

    def get_session(self, session_id: str) -> Optional[FocusSession]:
        with self._db.connect() as conn:
            row = conn.execute(
                f'SELECT {_SESSION_COLUMNS} FROM "FocusSession" WHERE id = ? LIMIT 1',
                (session_id,),
            ).fetchone()
        return _session(row) if row else None

    def list_visible(self, user_id: str, limit: int = 30) -> List[SessionListItem]:
        """Sessions the user has not hidden, newest first."""
        with self._db.connect() as conn:
            rows = conn.execute(
                """
                SELECT
                    fs.id, fs.name, fs.admin_user_id, fs.created_at, fs.started_at,
                    fs.ended_at, fs.duration_seconds,
                    COUNT(uis.id) AS participant_count,
                    CASE WHEN fs.admin_user_id = ? THEN 1 ELSE 0 END AS is_admin
                FROM "FocusSession" fs
                LEFT JOIN "UserInSession" uis ON uis.focus_session_id = fs.id
                LEFT JOIN "UserHiddenSession" uhs
                    ON uhs.session_id = fs.id AND uhs.user_id = ?
                WHERE uhs.id IS NULL
                GROUP BY fs.id
                ORDER BY COALESCE(fs.started_at, fs.created_at) DESC
                LIMIT ?
                """,
                (user_id, user_id, limit),
            ).fetchall()
        return [
            SessionListItem(
                id=r["id"],
                name=r["name"],
                admin_user_id=r["admin_user_id"],
                created_at=r["created_at"],
                started_at=r["started_at"],
                ended_at=r["ended_at"],
                duration_seconds=r["duration_seconds"],
                participant_count=r["participant_count"],
                is_admin=bool(r["is_admin"]),
            )
            for r in rows
        ]

    def mark_joined(
        self,
        session_id: str,
        user_id: str,
        goal: str,
        team_session_id: Optional[str],
        now: float,
    ) -> bool:
        """First joiner starts the clock and becomes admin if none is recorded.

        Returns False when the session is missing or already ended.
        """
        with self._db.connect() as conn:
            cur = conn.execute(
                """
                UPDATE "FocusSession"
                SET started_at = COALESCE(started_at, ?),
                    goal = COALESCE(goal, ?),
                    admin_user_id = COALESCE(admin_user_id, ?),
                    team_session_id = COALESCE(team_session_id, ?)
                WHERE id = ? AND ended_at IS NULL
                """,
                (now, goal, user_id, team_session_id, session_id),
            )
            return cur.rowcount == 1

    def end_session(self, session_id: str, now: float) -> None:
        """Set ended_at once; later calls leave the first value in place."""
        with self._db.connect() as conn:
            conn.execute(
                'UPDATE "FocusSession" SET ended_at = COALESCE(ended_at, ?) WHERE id = ?',
                (now, session_id),
            )

    def set_session_recap(self, session_id: str, recap: str) -> None:
        with self._db.connect() as conn:
            conn.execute(
                'UPDATE "FocusSession" SET recap = ? WHERE id = ?', (recap, session_id)
            )

    def hide_session(self, user_id: str, session_id: str, now: float) -> None:
        with self._db.connect() as conn:
            conn.execute(
                """
                INSERT INTO "UserHiddenSession" (user_id, session_id, created_at)
                VALUES (?, ?, ?)
                ON CONFLICT (user_id, session_id) DO NOTHING
                """,
                (user_id, session_id, now),
            )

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    def upsert_participant(
        self, session_id: str, user_id: str, user_name: str, goal: str
    ) -> Participant:
        with self._db.connect() as conn:
            row = conn.execute(
                f"""
                INSERT INTO "UserInSession" (focus_session_id, user_id, user_name, goal)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (focus_session_id, user_id) DO UPDATE SET goal = excluded.goal
                RETURNING {_PARTICIPANT_COLUMNS}
                """,
                (session_id, user_id, user_name, goal),
            ).fetchone()
        return _participant(row)

    def get_participant(self, session_id: str, user_id: str) -> Optional[Participant]:
        with self._db.connect() as conn:
            row = conn.execute(
                f"""
                SELECT {_PARTICIPANT_COLUMNS} FROM "UserInSession"
                WHERE focus_session_id = ? AND user_id = ? LIMIT 1
                """,
                (session_id, user_id),
            ).fetchone()
        return _participant(row) if row else None

    def participants(self, session_id: str) -> List[Participant]:
        with self._db.connect() as conn:
            rows = conn.execute(
                f"""
                SELECT {_PARTICIPANT_COLUMNS} FROM "UserInSession"
                WHERE focus_session_id = ? ORDER BY id ASC
                """,
                (session_id,),
            ).fetchall()
        return [_participant(r) for r in rows]

    def write_recap(self, participant_id: int, recap: str) -> bool:
        """Store the recap; True only for the write that replaced a NULL recap."""
        with self._db.connect() as conn:
            first = conn.execute(
                'UPDATE "UserInSession" SET recap = ? WHERE id = ? AND recap IS NULL',
                (recap, participant_id),
            ).rowcount == 1
            if not first:
                conn.execute(
                    'UPDATE "UserInSession" SET recap = ? WHERE id = ?',
                    (recap, participant_id),
                )
        return first

    # ------------------------------------------------------------------
    # Break sub-state (conditional writes)
    # ------------------------------------------------------------------

    def begin_break(self, participant_id: int, now: float, ends_at: float) -> bool:
        with self._db.connect() as conn:
            cur = conn.execute(
                """
                UPDATE "UserInSession"
                SET break_active = 1,
                    break_started_at = ?,
                    break_ends_at = ?,
                    break_relaxations_used = 0,
                    break_escalated_at = NULL
                WHERE id = ? AND break_active = 0
                """,
                (now, ends_at, participant_id),
            )
            return cur.rowcount == 1

    def extend_break(
        self, participant_id: int, now: float, extension_seconds: int, max_relaxations: int
    ) -> bool:
        with self._db.connect() as conn:
            cur = conn.execute(
                """
                UPDATE "UserInSession"
                SET break_ends_at = MAX(COALESCE(break_ends_at, ?), ?) + ?,
                    break_relaxations_used = break_relaxations_used + 1,
                    break_escalated_at = NULL
                WHERE id = ? AND break_active = 1 AND break_relaxations_used < ?
                """,
                (now, now, extension_seconds, participant_id, max_relaxations),
            )
            return cur.rowcount == 1

    def finish_break(self, participant_id: int, paused_seconds: int) -> bool:
        with self._db.connect() as conn:
            cur = conn.execute(
                """
                UPDATE "UserInSession"
                SET break_active = 0,
                    break_started_at = NULL,
                    break_ends_at = NULL,
                    break_paused_seconds = break_paused_seconds + ?,
                    break_escalated_at = NULL
                WHERE id = ? AND break_active = 1
                """,
                (paused_seconds, participant_id),
            )
            return cur.rowcount == 1

    def mark_escalated(self, participant_id: int, now: float) -> bool:
        """Claim the escalation of an overdue, unescalated break."""
        with self._db.connect() as conn:
            cur = conn.execute(
                """
                UPDATE "UserInSession"
                SET break_escalated_at = ?
                WHERE id = ?
                  AND break_active = 1
                  AND break_escalated_at IS NULL
                  AND break_ends_at < ?
                """,
                (now, participant_id, now),
            )
            return cur.rowcount == 1

    def overdue_unescalated(self, now: float, limit: int = 100) -> List[Participant]:
        """Participants in live sessions whose break deadline passed unacknowledged."""
        cols = ", ".join(f"uis.{c.strip()}" for c in _PARTICIPANT_COLUMNS.split(","))
        with self._db.connect() as conn:
            rows = conn.execute(
                f"""
                SELECT {cols}
                FROM "UserInSession" uis
                INNER JOIN "FocusSession" fs ON fs.id = uis.focus_session_id
                WHERE uis.break_active = 1
                  AND uis.break_ends_at < ?
                  AND uis.break_escalated_at IS NULL
                  AND uis.user_id IS NOT NULL
                  AND fs.ended_at IS NULL
                ORDER BY uis.break_ends_at ASC
                LIMIT ?
                """,
                (now, limit),
            ).fetchall()
        return [_participant(r) for r in rows]

    # ------------------------------------------------------------------
    # Account purge
    # ------------------------------------------------------------------

    def purge_user(self, user_id: str) -> None:
        with self._db.connect() as conn:
            conn.execute('DELETE FROM "UserInSession" WHERE user_id = ?', (user_id,))
            conn.execute('DELETE FROM "UserHiddenSession" WHERE user_id = ?', (user_id,))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _session(row: sqlite3.Row) -> FocusSession:
    return FocusSession(
        id=row["id"],
        name=row["name"],
        admin_user_id=row["admin_user_id"],
        duration_seconds=row["duration_seconds"],
        goal=row["goal"],
        recap=row["recap"],
        team_session_id=row["team_session_id"],
        created_at=row["created_at"],
        started_at=row["started_at"],
        ended_at=row["ended_at"],
    )


def _participant(row: sqlite3.Row) -> Participant:
    return Participant(
        id=row["id"],
        focus_session_id=row["focus_session_id"],
        user_id=row["user_id"],
        user_name=row["user_name"],
        goal=row["goal"],
        recap=row["recap"],
        break_active=bool(row["break_active"]),
        break_started_at=row["break_started_at"],
        break_ends_at=row["break_ends_at"],
        break_relaxations_used=row["break_relaxations_used"],
        break_paused_seconds=row["break_paused_seconds"],
        break_escalated_at=row["break_escalated_at"],
    )
