"""
Per-user focus/reliability state and the append-only score log.

Every write is one upsert whose insert branch starts from the scoring
baseline and whose update branch does clamped arithmetic against the stored
row, so concurrent pings and break transitions interleave safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ..scoring.reliability import (
    BASELINE_FOCUS_SCORE,
    BASELINE_RELIABILITY_SCORE,
    CLEAN_RETURN_RELIABILITY_BONUS,
    ESCALATION_FOCUS_PENALTY,
    ESCALATION_RELIABILITY_PENALTY,
    RETURN_FOCUS_BONUS,
    SCORE_MAX,
    SCORE_MIN,
    clamp_score,
)
from .database import Database


@dataclass
class FocusState:
    user_id: str
    last_activity_at: Optional[float] = None
    focus_score: int = BASELINE_FOCUS_SCORE
    reliability_score: int = BASELINE_RELIABILITY_SCORE
    overdue_count: int = 0
    last_overdue_at: Optional[float] = None


_STATE_COLUMNS = (
    "user_id, last_activity_at, focus_score, reliability_score, "
    "overdue_count, last_overdue_at"
)


class FocusStateStore:

    def __init__(self, db: Database):
        self._db = db

    def get(self, user_id: str) -> FocusState:
        """Stored state, or the baseline for a user who has none yet."""
        with self._db.connect() as conn:
            row = conn.execute(
                f'SELECT {_STATE_COLUMNS} FROM "UserFocusState" WHERE user_id = ? LIMIT 1',
                (user_id,),
            ).fetchone()
        return FocusState(**dict(row)) if row else FocusState(user_id=user_id)

    def record_activity(self, user_id: str, focus_score: int, now: float) -> FocusState:
        score = clamp_score(focus_score)
        with self._db.connect() as conn:
            row = conn.execute(
                f"""
                INSERT INTO "UserFocusState"
                    (user_id, last_activity_at, focus_score, reliability_score, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (user_id) DO UPDATE SET
                    last_activity_at = excluded.last_activity_at,
                    focus_score = excluded.focus_score,
                    updated_at = excluded.updated_at
                RETURNING {_STATE_COLUMNS}
                """,
                (user_id, now, score, BASELINE_RELIABILITY_SCORE, now),
            ).fetchone()
            state = FocusState(**dict(row))
            _log_score(conn, user_id, state.focus_score, now)
        return state

    def apply_return(self, user_id: str, on_time: bool, now: float) -> FocusState:
        """Reward a return from break; only an on-time return restores reliability."""
        reliability_bonus = CLEAN_RETURN_RELIABILITY_BONUS if on_time else 0
        with self._db.connect() as conn:
            row = conn.execute(
                f"""
                INSERT INTO "UserFocusState"
                    (user_id, last_activity_at, focus_score, reliability_score, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (user_id) DO UPDATE SET
                    last_activity_at = excluded.last_activity_at,
                    focus_score = MIN(?, focus_score + ?),
                    reliability_score = MIN(?, reliability_score + ?),
                    updated_at = excluded.updated_at
                RETURNING {_STATE_COLUMNS}
                """,
                (
                    user_id,
                    now,
                    clamp_score(BASELINE_FOCUS_SCORE + RETURN_FOCUS_BONUS),
                    clamp_score(BASELINE_RELIABILITY_SCORE + reliability_bonus),
                    now,
                    SCORE_MAX,
                    RETURN_FOCUS_BONUS,
                    SCORE_MAX,
                    reliability_bonus,
                ),
            ).fetchone()
            state = FocusState(**dict(row))
            _log_score(conn, user_id, state.focus_score, now)
        return state

    def apply_escalation(self, user_id: str, now: float) -> FocusState:
        """One-time penalty for an escalated (overdue, unacknowledged) break."""
        with self._db.connect() as conn:
            row = conn.execute(
                f"""
                INSERT INTO "UserFocusState"
                    (user_id, focus_score, reliability_score, overdue_count,
                     last_overdue_at, updated_at)
                VALUES (?, ?, ?, 1, ?, ?)
                ON CONFLICT (user_id) DO UPDATE SET
                    focus_score = MAX(?, focus_score - ?),
                    reliability_score = MAX(?, reliability_score - ?),
                    overdue_count = overdue_count + 1,
                    last_overdue_at = excluded.last_overdue_at,
                    updated_at = excluded.updated_at
                RETURNING {_STATE_COLUMNS}
                """,
                (
                    user_id,
                    clamp_score(BASELINE_FOCUS_SCORE - ESCALATION_FOCUS_PENALTY),
                    clamp_score(BASELINE_RELIABILITY_SCORE - ESCALATION_RELIABILITY_PENALTY),
                    now,
                    now,
                    SCORE_MIN,
                    ESCALATION_FOCUS_PENALTY,
                    SCORE_MIN,
                    ESCALATION_RELIABILITY_PENALTY,
                ),
            ).fetchone()
            state = FocusState(**dict(row))
            _log_score(conn, user_id, state.focus_score, now)
        return state

    def recent_scores(self, user_id: str, limit: int = 12) -> List[int]:
        """The last *limit* logged focus scores, oldest first."""
        with self._db.connect() as conn:
            rows = conn.execute(
                """
                SELECT score FROM "UserFocusScoreLog"
                WHERE user_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return [row["score"] for row in reversed(rows)]

    def purge_user(self, user_id: str) -> None:
        with self._db.connect() as conn:
            conn.execute('DELETE FROM "UserFocusScoreLog" WHERE user_id = ?', (user_id,))
            conn.execute('DELETE FROM "UserFocusState" WHERE user_id = ?', (user_id,))


def _log_score(conn, user_id: str, score: int, now: float) -> None:
    conn.execute(
        'INSERT INTO "UserFocusScoreLog" (user_id, score, created_at) VALUES (?, ?, ?)',
        (user_id, score, now),
    )
