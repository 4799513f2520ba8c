"""
/sessions/{session_id}/break: start, extend, return from and escalate a
participant's break.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from ...store.directory import User
from ..deps import current_user, get_now, get_services
from ..schemas import (
    BreakExtendedOut,
    BreakReturnedOut,
    BreakReturnIn,
    BreakStartedOut,
    BreakStartIn,
    EscalationOut,
)

router = APIRouter(prefix="/sessions/{session_id}/break", tags=["breaks"])


@router.post("/start", response_model=BreakStartedOut)
def start_break(
    session_id: str,
    req: BreakStartIn,
    user: User = Depends(current_user),
    services=Depends(get_services),
    now: float = Depends(get_now),
):
    started = services["breaks"].start(session_id.strip(), user.id, req.duration_minutes, now)
    return BreakStartedOut(duration_minutes=started.duration_minutes, break_ends_at=started.ends_at)


@router.post("/extend", response_model=BreakExtendedOut)
def extend_break(
    session_id: str,
    user: User = Depends(current_user),
    services=Depends(get_services),
    now: float = Depends(get_now),
):
    extended = services["breaks"].extend(session_id.strip(), user.id, now)
    return BreakExtendedOut(
        extension_minutes=extended.extension_minutes,
        relaxations_used=extended.relaxations_used,
        break_ends_at=extended.ends_at,
    )


@router.post("/return", response_model=BreakReturnedOut)
def return_from_break(
    session_id: str,
    req: Optional[BreakReturnIn] = None,
    user: User = Depends(current_user),
    services=Depends(get_services),
    now: float = Depends(get_now),
):
    """Overdue returns need a non-empty recoveryAction naming what comes next."""
    returned = services["breaks"].return_from_break(
        session_id.strip(),
        user.id,
        now,
        recovery_action=req.recovery_action if req else None,
    )
    return BreakReturnedOut(
        recovery_applied=returned.recovery_applied,
        overdue_seconds=returned.overdue_seconds,
    )


@router.post("/escalate", response_model=EscalationOut, response_model_exclude_none=True)
async def escalate_break(
    session_id: str,
    user: User = Depends(current_user),
    services=Depends(get_services),
    now: float = Depends(get_now),
):
    """Idempotent: a break that is not due reports why instead of failing."""
    result = await services["breaks"].escalate(session_id.strip(), user, now)
    return EscalationOut.model_validate(result)
