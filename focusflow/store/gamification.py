"""UserGamification rows: points and recap streaks."""

from __future__ import annotations

from datetime import date

from ..scoring.gamification import GamificationStats
from .database import Database


class GamificationStore:

    def __init__(self, db: Database):
        self._db = db

    def get(self, user_id: str) -> GamificationStats:
        with self._db.connect() as conn:
            row = conn.execute(
                """
                SELECT total_points, current_streak, longest_streak, last_session_date
                FROM "UserGamification" WHERE user_id = ? LIMIT 1
                """,
                (user_id,),
            ).fetchone()
        if row is None:
            return GamificationStats()
        last = row["last_session_date"]
        return GamificationStats(
            total_points=row["total_points"],
            current_streak=row["current_streak"],
            longest_streak=row["longest_streak"],
            last_session_date=date.fromisoformat(last) if last else None,
        )

    def save(self, user_id: str, stats: GamificationStats, now: float) -> None:
        last = stats.last_session_date.isoformat() if stats.last_session_date else None
        with self._db.connect() as conn:
            conn.execute(
                """
                INSERT INTO "UserGamification"
                    (user_id, total_points, current_streak, longest_streak,
                     last_session_date, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT (user_id) DO UPDATE SET
                    total_points = MAX(total_points, excluded.total_points),
                    current_streak = excluded.current_streak,
                    longest_streak = MAX(longest_streak, excluded.longest_streak),
                    last_session_date = excluded.last_session_date,
                    updated_at = excluded.updated_at
                """,
                (
                    user_id,
                    stats.total_points,
                    stats.current_streak,
                    stats.longest_streak,
                    last,
                    now,
                ),
            )

    def purge_user(self, user_id: str) -> None:
        with self._db.connect() as conn:
            conn.execute('DELETE FROM "UserGamification" WHERE user_id = ?', (user_id,))
