"""
Legacy aliases: /sessions/join and /sessions/recap with the session id in
the body, kept for older clients. Same rules as the per-session endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ...store.directory import User
from ..deps import current_user, get_now, get_services
from ..schemas import LegacyJoinIn, LegacyRecapIn, SuccessOut

router = APIRouter(prefix="/sessions", tags=["legacy"])


@router.post("/join", response_model=SuccessOut)
def legacy_join(
    req: LegacyJoinIn,
    user: User = Depends(current_user),
    services=Depends(get_services),
    now: float = Depends(get_now),
):
    services["sessions"].join(
        req.session_id, user, goal=req.goal, now=now, team_session_id=req.team_session_id
    )
    return SuccessOut()


@router.post("/recap", response_model=SuccessOut)
def legacy_recap(
    req: LegacyRecapIn,
    user: User = Depends(current_user),
    services=Depends(get_services),
    now: float = Depends(get_now),
):
    # older clients read the recap from the session row
    services["sessions"].submit_recap(req.session_id, user, req.recap, now, copy_to_session=True)
    return SuccessOut()
