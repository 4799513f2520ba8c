"""
Break State Machine: per-participant break protocol inside a focus session.

    NoBreak --start--> OnBreak --return--> NoBreak
                         |  ^
                  extend |  | (deadline pushed, escalation cleared)
                         v  |
                       OnBreak[overdue] --escalate--> OnBreak[overdue, escalated]

Break mode exists only for sessions of 3 hours or longer and unlocks one hour
after the session clock started. Every transition re-checks the session and
participant rows and then commits through a conditional write, so a
concurrent request that already changed the row makes the later one fail (or
skip, for escalation) instead of double-applying.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from html import escape
from typing import Optional, Tuple
from urllib.parse import quote

from ..errors import BreakLocked, InvalidState, NotFound, UpstreamFailure, ValidationError
from ..notify.email import Notifier
from ..store.directory import User, UserDirectory
from ..store.focus_state import FocusStateStore
from ..store.sessions import FocusSession, Participant, SessionStore
from ..timeutil import elapsed_seconds, seconds_until

logger = logging.getLogger(__name__)

MIN_BREAK_ELIGIBLE_SECONDS = 3 * 60 * 60
BREAK_UNLOCK_DELAY_SECONDS = 60 * 60
MIN_BREAK_MINUTES = 1
MAX_BREAK_MINUTES = 240
EXTENSION_MINUTES = 5
MAX_RELAXATIONS = 3


class EscalationSkip(str, Enum):
    BREAK_NOT_ACTIVE = "break_not_active"
    BREAK_NOT_OVERDUE = "break_not_overdue"
    ALREADY_ESCALATED = "already_escalated"


@dataclass
class BreakStarted:
    duration_minutes: int
    started_at: float
    ends_at: float


@dataclass
class BreakExtended:
    extension_minutes: int
    relaxations_used: int
    ends_at: Optional[float]


@dataclass
class BreakReturned:
    recovery_applied: bool
    overdue_seconds: int
    paused_seconds: int


@dataclass
class EscalationResult:
    escalated: bool
    reason: Optional[EscalationSkip] = None
    email_sent: Optional[bool] = None
    group_alerts_sent: Optional[int] = None


def is_break_eligible(session: FocusSession) -> bool:
    return (session.duration_seconds or 0) >= MIN_BREAK_ELIGIBLE_SECONDS


def escalation_skip(entry: Participant, now: float) -> Optional[EscalationSkip]:
    """Why escalating *entry* at *now* would be a no-op, or None if it is due."""
    if not entry.break_active:
        return EscalationSkip.BREAK_NOT_ACTIVE
    if entry.break_ends_at is None or now <= entry.break_ends_at:
        return EscalationSkip.BREAK_NOT_OVERDUE
    if entry.break_escalated_at is not None:
        return EscalationSkip.ALREADY_ESCALATED
    return None


class BreakStateMachine:

    def __init__(
        self,
        sessions: SessionStore,
        focus_state: FocusStateStore,
        directory: UserDirectory,
        notifier: Notifier,
        app_url: str = "http://localhost:3000",
    ):
        self._sessions = sessions
        self._focus_state = focus_state
        self._directory = directory
        self._notifier = notifier
        self._app_url = app_url.rstrip("/")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self, session_id: str, user_id: str, duration_minutes: int, now: float) -> BreakStarted:
        if not MIN_BREAK_MINUTES <= duration_minutes <= MAX_BREAK_MINUTES:
            raise ValidationError(
                f"durationMinutes must be between {MIN_BREAK_MINUTES} and {MAX_BREAK_MINUTES}"
            )

        session = self._live_session(session_id)
        if session.started_at is None:
            raise InvalidState("Session has not started yet.")
        self._require_eligible(session)
        unlock_in = seconds_until(session.started_at + BREAK_UNLOCK_DELAY_SECONDS, now)
        if unlock_in > 0:
            raise BreakLocked(unlock_in)

        entry = self._require_participant(session, user_id)
        if entry.break_active:
            raise InvalidState("Break is already active.")

        ends_at = now + duration_minutes * 60
        if not self._sessions.begin_break(entry.id, now, ends_at):
            raise InvalidState("Break is already active.")

        logger.info("Break started: session=%s user=%s minutes=%d", session_id, user_id, duration_minutes)
        return BreakStarted(duration_minutes=duration_minutes, started_at=now, ends_at=ends_at)

    def extend(self, session_id: str, user_id: str, now: float) -> BreakExtended:
        session, entry = self._participant_in(session_id, user_id)
        _check_extendable(entry)

        extended = self._sessions.extend_break(entry.id, now, EXTENSION_MINUTES * 60, MAX_RELAXATIONS)
        if not extended:
            # another request changed the row between the read and the write
            current = self._sessions.get_participant(session.id, user_id)
            _check_extendable(current)
            raise InvalidState("Relaxation limit reached.")

        current = self._sessions.get_participant(session.id, user_id)
        logger.info(
            "Break extended: session=%s user=%s relaxations=%d",
            session_id, user_id, current.break_relaxations_used,
        )
        return BreakExtended(
            extension_minutes=EXTENSION_MINUTES,
            relaxations_used=current.break_relaxations_used,
            ends_at=current.break_ends_at,
        )

    def return_from_break(
        self,
        session_id: str,
        user_id: str,
        now: float,
        recovery_action: Optional[str] = None,
    ) -> BreakReturned:
        _, entry = self._participant_in(session_id, user_id)
        if not entry.break_active:
            raise InvalidState("No active break to return from.")

        # a return counts as late only once a whole second has passed the deadline
        overdue_seconds = elapsed_seconds(entry.break_ends_at, now)
        overdue = overdue_seconds > 0
        action = (recovery_action or "").strip()
        if overdue and not action:
            raise ValidationError("Recovery action is required when returning after overdue break.")

        paused_seconds = elapsed_seconds(entry.break_started_at, now)
        if not self._sessions.finish_break(entry.id, paused_seconds):
            raise InvalidState("No active break to return from.")

        self._focus_state.apply_return(user_id, on_time=not overdue, now=now)
        if overdue:
            logger.info(
                "Recovery return: session=%s user=%s overdue=%ds next=%r",
                session_id, user_id, overdue_seconds, action,
            )
        return BreakReturned(
            recovery_applied=overdue,
            overdue_seconds=overdue_seconds,
            paused_seconds=paused_seconds,
        )

    async def escalate(self, session_id: str, user: User, now: float) -> EscalationResult:
        loop = asyncio.get_running_loop()
        session, entry = await loop.run_in_executor(None, self._participant_in, session_id, user.id)
        return await self._escalate_entry(session, entry, user, now)

    async def sweep_overdue(self, now: float) -> int:
        """Escalate every overdue, unacknowledged break in a live session."""
        loop = asyncio.get_running_loop()
        entries = await loop.run_in_executor(None, self._sessions.overdue_unescalated, now)
        escalated = 0
        for entry in entries:
            user, session = await loop.run_in_executor(None, self._escalation_target, entry)
            if user is None or session is None:
                continue
            result = await self._escalate_entry(session, entry, user, now)
            if result.escalated:
                escalated += 1
        return escalated

    # ------------------------------------------------------------------
    # Escalation
    # ------------------------------------------------------------------

    async def _escalate_entry(
        self, session: FocusSession, entry: Participant, user: User, now: float
    ) -> EscalationResult:
        # store work runs in the default executor; only mail delivery stays on the loop
        loop = asyncio.get_running_loop()
        skip = await loop.run_in_executor(None, self._commit_escalation, session, entry, user, now)
        if skip is not None:
            return EscalationResult(escalated=False, reason=skip)

        email_sent, group_alerts_sent = await self._notify_overdue(session, user)
        logger.info(
            "Break escalated: session=%s user=%s email=%s group_alerts=%d",
            session.id, user.id, email_sent, group_alerts_sent,
        )
        return EscalationResult(
            escalated=True, email_sent=email_sent, group_alerts_sent=group_alerts_sent
        )

    def _commit_escalation(
        self, session: FocusSession, entry: Participant, user: User, now: float
    ) -> Optional[EscalationSkip]:
        """Flag the break and apply the penalty, or say why it is not due."""
        skip = escalation_skip(entry, now)
        if skip is not None:
            return skip

        if not self._sessions.mark_escalated(entry.id, now):
            current = self._sessions.get_participant(session.id, user.id)
            if current is None:
                return EscalationSkip.BREAK_NOT_ACTIVE
            return escalation_skip(current, now) or EscalationSkip.ALREADY_ESCALATED

        self._focus_state.apply_escalation(user.id, now)
        return None

    def _escalation_target(self, entry: Participant) -> Tuple[Optional[User], Optional[FocusSession]]:
        return self._directory.get(entry.user_id), self._sessions.get_session(entry.focus_session_id)

    async def _notify_overdue(self, session: FocusSession, user: User) -> Tuple[bool, int]:
        session_url = f"{self._app_url}/focus-sessions/{quote(session.id, safe='')}"
        session_label = session.name or session.id

        email_sent = False
        if user.email:
            email_sent = await self._send_quietly(
                to=user.email,
                subject="FocusFlow: Break over, get back to work",
                text=f"Your break is over. Return to your session: {session_url}",
                html=(
                    "<p>Your break is over.</p>"
                    f'<p><a href="{escape(session_url)}">Return to FocusFlow session</a></p>'
                ),
            )

        group_alerts_sent = 0
        if session.team_session_id:
            member = user.display_name or "A member"
            own_email = (user.email or "").lower()
            loop = asyncio.get_running_loop()
            admin_emails = await loop.run_in_executor(
                None, self._directory.group_admin_emails, session.team_session_id
            )
            for admin_email in admin_emails:
                admin_email = admin_email.strip()
                if not admin_email or admin_email.lower() == own_email:
                    continue
                sent = await self._send_quietly(
                    to=admin_email,
                    subject="FocusFlow Group Alert: Member overdue from break",
                    text=f'{member} is overdue from break in session "{session_label}". {session_url}',
                    html=(
                        f"<p><strong>{escape(member)}</strong> is overdue from break in session "
                        f"<strong>{escape(session_label)}</strong>.</p>"
                        f'<p><a href="{escape(session_url)}">Open session</a></p>'
                    ),
                )
                if sent:
                    group_alerts_sent += 1
        return email_sent, group_alerts_sent

    async def _send_quietly(self, to: str, subject: str, text: str, html: str) -> bool:
        try:
            return await self._notifier.send(to=to, subject=subject, text=text, html=html)
        except UpstreamFailure as exc:
            logger.warning("Escalation notice not delivered: %s", exc.message)
            return False

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    def _live_session(self, session_id: str) -> FocusSession:
        session = self._sessions.get_session(session_id)
        if session is None:
            raise NotFound("Session not found.")
        if session.is_ended:
            raise InvalidState("Session already ended.")
        return session

    def _require_eligible(self, session: FocusSession) -> None:
        if not is_break_eligible(session):
            raise InvalidState("Break mode is available only for sessions of 3 hours or longer.")

    def _require_participant(self, session: FocusSession, user_id: str) -> Participant:
        entry = self._sessions.get_participant(session.id, user_id)
        if entry is None:
            raise InvalidState("Join the session first.")
        return entry

    def _participant_in(self, session_id: str, user_id: str) -> Tuple[FocusSession, Participant]:
        session = self._live_session(session_id)
        self._require_eligible(session)
        return session, self._require_participant(session, user_id)


def _check_extendable(entry: Optional[Participant]) -> None:
    if entry is None or not entry.break_active:
        raise InvalidState("No active break to extend.")
    if entry.break_relaxations_used >= MAX_RELAXATIONS:
        raise InvalidState("Relaxation limit reached.")
