"""
/sessions: create, list, hide, join, view, end and recap focus sessions.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ...store.directory import User
from ..deps import current_user, get_now, get_services
from ..schemas import (
    EndedOut,
    HiddenOut,
    JoinedOut,
    ParticipantOut,
    RecapIn,
    SavedOut,
    SessionCreatedOut,
    SessionCreateIn,
    SessionDetailOut,
    SessionJoinIn,
    SessionListItemOut,
    SessionListOut,
    SessionOut,
)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=SessionCreatedOut)
def create_session(
    req: SessionCreateIn,
    user: User = Depends(current_user),
    services=Depends(get_services),
    now: float = Depends(get_now),
):
    session = services["sessions"].create(
        user,
        name=req.name,
        duration_minutes=req.duration_minutes,
        now=now,
        team_session_id=req.team_session_id,
    )
    return SessionCreatedOut(session=SessionOut.model_validate(session))


@router.get("", response_model=SessionListOut)
def list_sessions(user: User = Depends(current_user), services=Depends(get_services)):
    """Sessions visible to the caller (hidden ones excluded), newest first."""
    items = services["sessions"].list_for(user)
    return SessionListOut(sessions=[SessionListItemOut.model_validate(i) for i in items])


@router.delete("", response_model=HiddenOut)
def hide_session(
    session_id: str = Query(..., alias="sessionId", min_length=1),
    user: User = Depends(current_user),
    services=Depends(get_services),
    now: float = Depends(get_now),
):
    """Hide an ended session from the caller's list. The shared row is kept."""
    services["sessions"].hide(session_id.strip(), user, now)
    return HiddenOut()


@router.get("/{session_id}", response_model=SessionDetailOut)
def get_session(
    session_id: str,
    user: User = Depends(current_user),
    services=Depends(get_services),
):
    view = services["sessions"].view(session_id.strip(), user)
    own = view.current_user_entry
    return SessionDetailOut(
        session=SessionOut.model_validate(view.session),
        participants=[ParticipantOut.model_validate(p) for p in view.participants],
        current_user_entry=ParticipantOut.model_validate(own) if own else None,
        is_admin=view.is_admin,
    )


@router.post("/{session_id}/join", response_model=JoinedOut)
def join_session(
    session_id: str,
    req: SessionJoinIn,
    user: User = Depends(current_user),
    services=Depends(get_services),
    now: float = Depends(get_now),
):
    services["sessions"].join(
        session_id.strip(), user, goal=req.goal, now=now, team_session_id=req.team_session_id
    )
    return JoinedOut()


@router.post("/{session_id}/end", response_model=EndedOut)
def end_session(
    session_id: str,
    user: User = Depends(current_user),
    services=Depends(get_services),
    now: float = Depends(get_now),
):
    services["sessions"].end(session_id.strip(), user, now)
    return EndedOut()


@router.post("/{session_id}/recap", response_model=SavedOut)
def submit_recap(
    session_id: str,
    req: RecapIn,
    user: User = Depends(current_user),
    services=Depends(get_services),
    now: float = Depends(get_now),
):
    services["sessions"].submit_recap(session_id.strip(), user, req.recap, now)
    return SavedOut()
