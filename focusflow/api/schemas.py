"""
Pydantic schemas for the FocusFlow HTTP API.

Wire names are camelCase; attributes stay snake_case. Response models read
straight from the store dataclasses (``from_attributes``).
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..breaks.state_machine import MAX_BREAK_MINUTES, MIN_BREAK_MINUTES, EscalationSkip
from ..scoring.reliability import ActivityKind, ScoreTrend
from ..sessions.lifecycle import MAX_SESSION_MINUTES, MIN_SESSION_MINUTES


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


# ── Sessions ───────────────────────────────────────────────────────────────

class SessionCreateIn(ApiModel):
    name: str = Field(..., min_length=1)
    duration_minutes: int = Field(..., ge=MIN_SESSION_MINUTES, le=MAX_SESSION_MINUTES)
    team_session_id: Optional[str] = None


class SessionJoinIn(ApiModel):
    goal: str = Field(..., min_length=1)
    team_session_id: Optional[str] = None


class RecapIn(ApiModel):
    recap: str = Field(..., min_length=1)


class SessionOut(ApiModel):
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


class SessionCreatedOut(ApiModel):
    session: SessionOut


class SessionListItemOut(ApiModel):
    id: str
    name: str
    admin_user_id: Optional[str]
    created_at: float
    started_at: Optional[float]
    ended_at: Optional[float]
    duration_seconds: Optional[int]
    participant_count: int
    is_admin: bool


class SessionListOut(ApiModel):
    sessions: List[SessionListItemOut]


class ParticipantOut(ApiModel):
    id: int
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


class SessionDetailOut(ApiModel):
    session: SessionOut
    participants: List[ParticipantOut]
    current_user_entry: Optional[ParticipantOut]
    is_admin: bool


class JoinedOut(ApiModel):
    joined: bool = True


class EndedOut(ApiModel):
    ended: bool = True


class SavedOut(ApiModel):
    saved: bool = True


class HiddenOut(ApiModel):
    deleted: bool = True
    scope: str = "current-user"


# ── Legacy aliases ─────────────────────────────────────────────────────────

class LegacyJoinIn(ApiModel):
    session_id: str = Field(..., min_length=1)
    goal: str = Field(..., min_length=1)
    team_session_id: Optional[str] = None


class LegacyRecapIn(ApiModel):
    session_id: str = Field(..., min_length=1)
    recap: str = Field(..., min_length=1)


class SuccessOut(ApiModel):
    success: bool = True


# ── Breaks ─────────────────────────────────────────────────────────────────

class BreakStartIn(ApiModel):
    duration_minutes: int = Field(..., ge=MIN_BREAK_MINUTES, le=MAX_BREAK_MINUTES)


class BreakReturnIn(ApiModel):
    recovery_action: Optional[str] = None


class BreakStartedOut(ApiModel):
    started: bool = True
    duration_minutes: int
    break_ends_at: float


class BreakExtendedOut(ApiModel):
    extended: bool = True
    extension_minutes: int
    relaxations_used: int
    break_ends_at: Optional[float]


class BreakReturnedOut(ApiModel):
    returned: bool = True
    recovery_applied: bool
    overdue_seconds: int


class EscalationOut(ApiModel):
    escalated: bool
    reason: Optional[EscalationSkip] = None
    email_sent: Optional[bool] = None
    group_alerts_sent: Optional[int] = None


# ── Scoring & gamification ─────────────────────────────────────────────────

class ActivityIn(ApiModel):
    type: ActivityKind = ActivityKind.ACTIVITY


class ActivityOut(ApiModel):
    ok: bool = True
    focus_score: int


class ScoreHistoryOut(ApiModel):
    score_trend: ScoreTrend
    score_points: List[int]
    reliability_score: int
    overdue_count: int
    last_overdue_at: Optional[float]


class GamificationStatsOut(ApiModel):
    total_points: int
    current_streak: int
    longest_streak: int
    last_session_date: Optional[str]


class GamificationOut(ApiModel):
    stats: GamificationStatsOut


# ── Privacy ────────────────────────────────────────────────────────────────

class PrivacyDeleteIn(ApiModel):
    confirm: str = ""


class PurgedOut(ApiModel):
    deleted: bool = True
