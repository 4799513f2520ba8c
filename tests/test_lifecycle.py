"""
Tests for the session lifecycle controller: create, join, end, recap, view,
hide and the gamification award on first recap.
"""

from __future__ import annotations

from datetime import date

import pytest

from focusflow.errors import Forbidden, InvalidState, NotFound, ValidationError
from focusflow.sessions.lifecycle import SessionLifecycle

from conftest import T0

DAY = 24 * 3600


@pytest.fixture
def lifecycle(session_store, gamification):
    return SessionLifecycle(session_store, gamification)


@pytest.fixture
def alice(directory):
    return directory.get("u-alice")


@pytest.fixture
def bob(directory):
    return directory.get("u-bob")


class TestCreate:
    def test_create_records_admin_and_duration(self, lifecycle, alice):
        session = lifecycle.create(alice, "  Writing block ", 200, now=T0)
        assert session.name == "Writing block"
        assert session.admin_user_id == alice.id
        assert session.duration_seconds == 200 * 60
        assert session.started_at is None
        assert session.ended_at is None
        assert session.created_at == T0

    def test_ids_are_unique(self, lifecycle, alice):
        ids = {lifecycle.create(alice, "s", 30, now=T0).id for _ in range(20)}
        assert len(ids) == 20

    @pytest.mark.parametrize("name", ["", "   "])
    def test_name_required(self, lifecycle, alice, name):
        with pytest.raises(ValidationError):
            lifecycle.create(alice, name, 30, now=T0)

    @pytest.mark.parametrize("minutes", [0, 241])
    def test_duration_bounds(self, lifecycle, alice, minutes):
        with pytest.raises(ValidationError):
            lifecycle.create(alice, "s", minutes, now=T0)

    def test_team_session_linked(self, lifecycle, session_store, alice):
        session = lifecycle.create(alice, "Team", 60, now=T0, team_session_id="grp-9")
        lifecycle.create(alice, "Team again", 60, now=T0, team_session_id="grp-9")
        assert session_store.get_session(session.id).team_session_id == "grp-9"


class TestJoin:
    def test_first_join_starts_clock(self, lifecycle, session_store, alice, bob):
        session = lifecycle.create(alice, "s", 60, now=T0)
        lifecycle.join(session.id, bob, "read paper", now=T0 + 30)
        lifecycle.join(session.id, alice, "write notes", now=T0 + 90)

        stored = session_store.get_session(session.id)
        assert stored.started_at == T0 + 30
        assert stored.goal == "read paper"
        assert stored.admin_user_id == alice.id

    def test_rejoin_updates_goal_without_duplicate(self, lifecycle, session_store, alice):
        session = lifecycle.create(alice, "s", 60, now=T0)
        lifecycle.join(session.id, alice, "first goal", now=T0)
        lifecycle.join(session.id, alice, "second goal", now=T0 + 10)
        participants = session_store.participants(session.id)
        assert len(participants) == 1
        assert participants[0].goal == "second goal"
        assert participants[0].user_name == "Alice"

    def test_missing_session(self, lifecycle, alice):
        with pytest.raises(NotFound):
            lifecycle.join("nope", alice, "goal", now=T0)

    def test_goal_required(self, lifecycle, alice):
        session = lifecycle.create(alice, "s", 60, now=T0)
        with pytest.raises(ValidationError):
            lifecycle.join(session.id, alice, " ", now=T0)

    def test_ended_session_rejects_join(self, lifecycle, alice, bob):
        session = lifecycle.create(alice, "s", 60, now=T0)
        lifecycle.join(session.id, alice, "goal", now=T0)
        lifecycle.end(session.id, alice, now=T0 + 60)
        with pytest.raises(InvalidState):
            lifecycle.join(session.id, bob, "late", now=T0 + 120)

    def test_rejected_join_leaves_no_team_row(self, lifecycle, db, alice, bob):
        with pytest.raises(NotFound):
            lifecycle.join("missing", bob, "goal", now=T0, team_session_id="team-x")

        session = lifecycle.create(alice, "s", 60, now=T0)
        lifecycle.end(session.id, alice, now=T0 + 60)
        with pytest.raises(InvalidState):
            lifecycle.join(session.id, bob, "late", now=T0 + 120, team_session_id="team-y")

        with db.connect() as conn:
            assert conn.execute('SELECT COUNT(*) FROM "TeamFocusSession"').fetchone()[0] == 0


class TestEnd:
    def test_only_admin_can_end(self, lifecycle, alice, bob):
        session = lifecycle.create(alice, "s", 60, now=T0)
        lifecycle.join(session.id, bob, "goal", now=T0)
        with pytest.raises(Forbidden):
            lifecycle.end(session.id, bob, now=T0 + 10)

    def test_end_is_idempotent(self, lifecycle, alice):
        session = lifecycle.create(alice, "s", 60, now=T0)
        first = lifecycle.end(session.id, alice, now=T0 + 10)
        again = lifecycle.end(session.id, alice, now=T0 + 999)
        assert first.ended_at == T0 + 10
        assert again.ended_at == T0 + 10

    def test_missing_session(self, lifecycle, alice):
        with pytest.raises(NotFound):
            lifecycle.end("nope", alice, now=T0)


class TestRecap:
    def test_requires_join(self, lifecycle, alice, bob):
        session = lifecycle.create(alice, "s", 60, now=T0)
        with pytest.raises(InvalidState):
            lifecycle.submit_recap(session.id, bob, "did stuff", now=T0)

    def test_recap_required(self, lifecycle, alice):
        session = lifecycle.create(alice, "s", 60, now=T0)
        lifecycle.join(session.id, alice, "goal", now=T0)
        with pytest.raises(ValidationError):
            lifecycle.submit_recap(session.id, alice, "", now=T0)

    def test_recap_ends_session_and_awards_once(self, lifecycle, session_store, gamification, alice):
        session = lifecycle.create(alice, "s", 60, now=T0)
        lifecycle.join(session.id, alice, "goal", now=T0)

        assert lifecycle.submit_recap(session.id, alice, "done", now=T0 + 100) is True
        assert lifecycle.submit_recap(session.id, alice, "done, edited", now=T0 + 200) is False

        assert session_store.get_participant(session.id, alice.id).recap == "done, edited"
        assert session_store.get_session(session.id).ended_at == T0 + 100
        stats = gamification.get(alice.id)
        assert stats.total_points == 10
        assert stats.current_streak == 1

    def test_streak_over_consecutive_days(self, lifecycle, gamification, alice):
        def recap_on(day_offset: int):
            when = T0 + day_offset * DAY + 3600
            session = lifecycle.create(alice, f"day {day_offset}", 60, now=when)
            lifecycle.join(session.id, alice, "goal", now=when)
            lifecycle.submit_recap(session.id, alice, "recap", now=when + 60)

        for d in (0, 1, 2):
            recap_on(d)
        stats = gamification.get(alice.id)
        assert stats.current_streak == 3
        assert stats.longest_streak == 3
        assert stats.total_points == 30

        recap_on(4)
        stats = gamification.get(alice.id)
        assert stats.current_streak == 1
        assert stats.longest_streak == 3
        assert stats.last_session_date == date(2026, 1, 5)

    def test_legacy_copy_to_session(self, lifecycle, session_store, alice):
        session = lifecycle.create(alice, "s", 60, now=T0)
        lifecycle.join(session.id, alice, "goal", now=T0)
        lifecycle.submit_recap(session.id, alice, "shared notes", now=T0 + 5, copy_to_session=True)
        assert session_store.get_session(session.id).recap == "shared notes"


class TestViewAndHide:
    def test_view(self, lifecycle, alice, bob):
        session = lifecycle.create(alice, "s", 60, now=T0)
        lifecycle.join(session.id, alice, "a", now=T0)
        lifecycle.join(session.id, bob, "b", now=T0 + 1)

        as_bob = lifecycle.view(session.id, bob)
        assert [p.user_id for p in as_bob.participants] == [alice.id, bob.id]
        assert as_bob.current_user_entry.user_id == bob.id
        assert as_bob.is_admin is False
        assert lifecycle.view(session.id, alice).is_admin is True

    def test_view_for_non_participant(self, lifecycle, directory, alice):
        session = lifecycle.create(alice, "s", 60, now=T0)
        carol = directory.get("u-carol")
        assert lifecycle.view(session.id, carol).current_user_entry is None

    def test_hide_requires_ended(self, lifecycle, alice):
        session = lifecycle.create(alice, "s", 60, now=T0)
        with pytest.raises(InvalidState):
            lifecycle.hide(session.id, alice, now=T0)

    def test_hide_is_per_viewer(self, lifecycle, session_store, alice, bob):
        session = lifecycle.create(alice, "s", 60, now=T0)
        lifecycle.end(session.id, alice, now=T0 + 1)
        lifecycle.hide(session.id, alice, now=T0 + 2)
        lifecycle.hide(session.id, alice, now=T0 + 3)

        assert session.id not in [s.id for s in lifecycle.list_for(alice)]
        assert session.id in [s.id for s in lifecycle.list_for(bob)]
        assert session_store.get_session(session.id) is not None

    def test_hide_missing(self, lifecycle, alice):
        with pytest.raises(NotFound):
            lifecycle.hide("nope", alice, now=T0)

    def test_list_counts_and_order(self, lifecycle, alice, bob):
        older = lifecycle.create(alice, "older", 60, now=T0)
        newer = lifecycle.create(bob, "newer", 60, now=T0 + 100)
        lifecycle.join(older.id, alice, "a", now=T0 + 10)
        lifecycle.join(older.id, bob, "b", now=T0 + 20)

        listed = lifecycle.list_for(alice)
        assert [s.id for s in listed] == [newer.id, older.id]
        assert listed[1].participant_count == 2
        assert listed[1].is_admin is True
        assert listed[0].is_admin is False
