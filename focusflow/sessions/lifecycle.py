"""
Session Lifecycle Controller: create, join, end, recap, view and hide
focus sessions.

A session is created by an admin, starts its shared clock on the first join,
and ends once (explicitly by the admin, or implicitly by a recap). Ended
sessions accept no joins or break actions; viewers may then hide them from
their own list.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import List, Optional

from ..errors import Forbidden, InvalidState, NotFound, ValidationError
from ..scoring.gamification import award_recap
from ..store.directory import User
from ..store.gamification import GamificationStore
from ..store.sessions import FocusSession, Participant, SessionListItem, SessionStore
from ..timeutil import utc_day

logger = logging.getLogger(__name__)

MIN_SESSION_MINUTES = 1
MAX_SESSION_MINUTES = 240
LIST_LIMIT = 30


@dataclass
class SessionView:
    session: FocusSession
    participants: List[Participant]
    current_user_entry: Optional[Participant]
    is_admin: bool


def make_session_id(now: float) -> str:
    return f"{int(now * 1000)}-{secrets.token_hex(5)}"


class SessionLifecycle:

    def __init__(self, sessions: SessionStore, gamification: GamificationStore):
        self._sessions = sessions
        self._gamification = gamification

    def create(
        self,
        admin: User,
        name: str,
        duration_minutes: int,
        now: float,
        team_session_id: Optional[str] = None,
    ) -> FocusSession:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Session name is required")
        if not MIN_SESSION_MINUTES <= duration_minutes <= MAX_SESSION_MINUTES:
            raise ValidationError(
                f"durationMinutes must be between {MIN_SESSION_MINUTES} and {MAX_SESSION_MINUTES}"
            )

        team_session_id = (team_session_id or "").strip() or None
        if team_session_id:
            self._sessions.ensure_team_session(team_session_id, now)

        session = self._sessions.create_session(
            session_id=make_session_id(now),
            name=name,
            admin_user_id=admin.id,
            duration_seconds=duration_minutes * 60,
            team_session_id=team_session_id,
            now=now,
        )
        logger.info("Session %s created by %s (%d min)", session.id, admin.id, duration_minutes)
        return session

    def list_for(self, user: User) -> List[SessionListItem]:
        return self._sessions.list_visible(user.id, limit=LIST_LIMIT)

    def join(
        self,
        session_id: str,
        user: User,
        goal: str,
        now: float,
        team_session_id: Optional[str] = None,
    ) -> Participant:
        goal = (goal or "").strip()
        if not goal:
            raise ValidationError("Goal is required")

        session = self._sessions.get_session(session_id)
        if session is None:
            raise NotFound("Session not found. Ask admin to create one first.")
        if session.is_ended:
            raise InvalidState("This session has ended. You can view recap but cannot join.")

        team_session_id = (team_session_id or "").strip() or None
        if team_session_id:
            self._sessions.ensure_team_session(team_session_id, now)
        if not self._sessions.mark_joined(
            session_id, user.id, goal, team_session_id, now
        ):
            raise InvalidState("This session has ended. You can view recap but cannot join.")

        return self._sessions.upsert_participant(session_id, user.id, user.display_name, goal)

    def end(self, session_id: str, user: User, now: float) -> FocusSession:
        session = self._require_session(session_id)
        if session.admin_user_id != user.id:
            raise Forbidden("Only admin can end this session.")
        if not session.is_ended:
            self._sessions.end_session(session_id, now)
            logger.info("Session %s ended by admin %s", session_id, user.id)
        return self._sessions.get_session(session_id)

    def submit_recap(
        self,
        session_id: str,
        user: User,
        recap: str,
        now: float,
        copy_to_session: bool = False,
    ) -> bool:
        """Save the participant's recap. Returns True when it was their first one.

        The first recap awards points and advances the daily streak. Any recap
        also ends the shared session clock if it is still running.
        """
        recap = (recap or "").strip()
        if not recap:
            raise ValidationError("Recap is required")

        entry = self._sessions.get_participant(session_id, user.id)
        if entry is None:
            raise InvalidState("Join the session first.")

        first = self._sessions.write_recap(entry.id, recap)
        if first:
            stats = award_recap(self._gamification.get(user.id), utc_day(now))
            self._gamification.save(user.id, stats, now)
            logger.debug("Recap award for %s: streak=%d", user.id, stats.current_streak)

        if copy_to_session:
            self._sessions.set_session_recap(session_id, recap)
        self._sessions.end_session(session_id, now)
        return first

    def view(self, session_id: str, user: User) -> SessionView:
        session = self._require_session(session_id)
        participants = self._sessions.participants(session_id)
        own = next((p for p in participants if p.user_id == user.id), None)
        return SessionView(
            session=session,
            participants=participants,
            current_user_entry=own,
            is_admin=session.admin_user_id == user.id,
        )

    def hide(self, session_id: str, user: User, now: float) -> None:
        """Remove an ended session from this user's list; the shared row stays."""
        session = self._require_session(session_id)
        if not session.is_ended:
            raise InvalidState("Only ended sessions can be deleted.")
        self._sessions.hide_session(user.id, session_id, now)

    def _require_session(self, session_id: str) -> FocusSession:
        session = self._sessions.get_session(session_id)
        if session is None:
            raise NotFound("Session not found")
        return session
