"""
/privacy: purge the caller's focus-session data.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ...errors import ValidationError
from ...store.directory import User
from ..deps import current_user, get_services
from ..schemas import PrivacyDeleteIn, PurgedOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/privacy", tags=["privacy"])


@router.post("/delete", response_model=PurgedOut)
def delete_my_data(
    req: PrivacyDeleteIn,
    user: User = Depends(current_user),
    services=Depends(get_services),
):
    """Remove participations, hidden-session marks, scores and streaks."""
    if req.confirm != "DELETE":
        raise ValidationError('Send { "confirm": "DELETE" } to proceed.')
    services["session_store"].purge_user(user.id)
    services["focus_state"].purge_user(user.id)
    services["gamification"].purge_user(user.id)
    logger.info("Purged focus data for user %s", user.id)
    return PurgedOut()
