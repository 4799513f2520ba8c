"""
/activity: ambient activity pings and focus-score history.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from ...store.directory import User
from ..deps import current_user, get_now, get_services
from ..schemas import ActivityIn, ActivityOut, ScoreHistoryOut

router = APIRouter(prefix="/activity", tags=["activity"])


@router.post("", response_model=ActivityOut)
def ping(
    req: Optional[ActivityIn] = None,
    user: User = Depends(current_user),
    services=Depends(get_services),
    now: float = Depends(get_now),
):
    kind = (req or ActivityIn()).type
    state = services["scoring"].ping(user.id, kind, now)
    return ActivityOut(focus_score=state.focus_score)


@router.get("/history", response_model=ScoreHistoryOut)
def history(user: User = Depends(current_user), services=Depends(get_services)):
    h = services["scoring"].history(user.id)
    return ScoreHistoryOut(
        score_trend=h.trend,
        score_points=h.points,
        reliability_score=h.reliability_score,
        overdue_count=h.overdue_count,
        last_overdue_at=h.last_overdue_at,
    )
