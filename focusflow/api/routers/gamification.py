"""
/gamification: the caller's points and recap streaks.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ...store.directory import User
from ..deps import current_user, get_services
from ..schemas import GamificationOut, GamificationStatsOut

router = APIRouter(prefix="/gamification", tags=["gamification"])


@router.get("", response_model=GamificationOut)
def get_stats(user: User = Depends(current_user), services=Depends(get_services)):
    stats = services["gamification"].get(user.id)
    last = stats.last_session_date
    return GamificationOut(
        stats=GamificationStatsOut(
            total_points=stats.total_points,
            current_streak=stats.current_streak,
            longest_streak=stats.longest_streak,
            last_session_date=last.isoformat() if last else None,
        )
    )
