"""
Focus scoring service: activity pings and score history.

Break returns and escalations write the same per-user row directly through
FocusStateStore; this service covers the ambient activity signal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ..store.focus_state import FocusState, FocusStateStore
from ..timeutil import elapsed_seconds
from .reliability import ActivityKind, ScoreTrend, activity_delta, clamp_score, score_trend


@dataclass
class ScoreHistory:
    trend: ScoreTrend
    points: List[int]
    reliability_score: int
    overdue_count: int
    last_overdue_at: Optional[float]


class FocusScoring:

    def __init__(self, store: FocusStateStore, trend_window: int = 12):
        self._store = store
        self._trend_window = trend_window

    def ping(self, user_id: str, kind: ActivityKind, now: float) -> FocusState:
        previous = self._store.get(user_id)
        last = previous.last_activity_at if previous.last_activity_at is not None else now
        idle = elapsed_seconds(last, now)
        score = clamp_score(previous.focus_score + activity_delta(kind, idle))
        return self._store.record_activity(user_id, score, now)

    def history(self, user_id: str) -> ScoreHistory:
        points = self._store.recent_scores(user_id, limit=self._trend_window)
        state = self._store.get(user_id)
        return ScoreHistory(
            trend=score_trend(points),
            points=points,
            reliability_score=state.reliability_score,
            overdue_count=state.overdue_count,
            last_overdue_at=state.last_overdue_at,
        )
