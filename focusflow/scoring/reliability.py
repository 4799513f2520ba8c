"""
Reliability/focus scoring rules.

Scores live in [0, 100]. A user with no state row starts from the baseline
(focus 80, reliability 100); every rule below is applied to that baseline on
the first write.
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence

SCORE_MIN = 0
SCORE_MAX = 100
BASELINE_FOCUS_SCORE = 80
BASELINE_RELIABILITY_SCORE = 100

# Break compliance
CLEAN_RETURN_RELIABILITY_BONUS = 3
RETURN_FOCUS_BONUS = 2
ESCALATION_FOCUS_PENALTY = 5
ESCALATION_RELIABILITY_PENALTY = 10


class ActivityKind(str, Enum):
    ACTIVITY = "activity"
    FOCUS = "focus"


class ScoreTrend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


def clamp_score(value: int) -> int:
    return max(SCORE_MIN, min(SCORE_MAX, value))


def activity_delta(kind: ActivityKind, idle_seconds: int) -> int:
    """Focus-score change for an activity ping after *idle_seconds* of silence."""
    if idle_seconds > 600:
        delta = -8
    elif idle_seconds > 300:
        delta = -4
    elif idle_seconds > 120:
        delta = -2
    else:
        delta = 1
    if kind == ActivityKind.FOCUS:
        delta += 1
    return delta


def score_trend(points: Sequence[int]) -> ScoreTrend:
    """Compare the first and last score of a chronological window."""
    if len(points) < 2:
        return ScoreTrend.STABLE
    if points[-1] > points[0]:
        return ScoreTrend.UP
    if points[-1] < points[0]:
        return ScoreTrend.DOWN
    return ScoreTrend.STABLE
