"""Points and daily streaks awarded for session recaps."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

RECAP_POINTS = 10


@dataclass
class GamificationStats:
    total_points: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_session_date: Optional[date] = None


def award_recap(stats: GamificationStats, today: date) -> GamificationStats:
    """Stats after a first recap submitted on UTC day *today*.

    Same day keeps the streak, the following day extends it, anything else
    starts over at 1. Points never decrease.
    """
    last = stats.last_session_date
    if last == today:
        streak = stats.current_streak or 1
    elif last is not None and last == today - timedelta(days=1):
        streak = stats.current_streak + 1
    else:
        streak = 1

    return GamificationStats(
        total_points=stats.total_points + RECAP_POINTS,
        current_streak=streak,
        longest_streak=max(stats.longest_streak, streak),
        last_session_date=today,
    )
