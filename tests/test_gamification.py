"""Tests for recap points and daily streak rules."""

from __future__ import annotations

from datetime import date, timedelta

from focusflow.scoring.gamification import RECAP_POINTS, GamificationStats, award_recap

D = date(2026, 3, 10)


def test_first_recap_ever():
    stats = award_recap(GamificationStats(), D)
    assert stats == GamificationStats(RECAP_POINTS, 1, 1, D)


def test_same_day_keeps_streak():
    stats = award_recap(GamificationStats(10, 4, 6, D), D)
    assert (stats.current_streak, stats.longest_streak, stats.total_points) == (4, 6, 20)


def test_next_day_extends():
    stats = award_recap(GamificationStats(10, 4, 4, D - timedelta(days=1)), D)
    assert (stats.current_streak, stats.longest_streak) == (5, 5)


def test_gap_resets_but_longest_survives():
    stats = award_recap(GamificationStats(50, 5, 5, D - timedelta(days=2)), D)
    assert (stats.current_streak, stats.longest_streak) == (1, 5)


def test_three_day_run_then_gap():
    stats = GamificationStats()
    for offset in range(3):
        stats = award_recap(stats, D + timedelta(days=offset))
    assert stats.current_streak == 3
    stats = award_recap(stats, D + timedelta(days=4))
    assert stats.current_streak == 1
    assert stats.longest_streak == 3
    assert stats.total_points == 4 * RECAP_POINTS


def test_store_round_trip(gamification):
    gamification.save("u1", GamificationStats(30, 3, 3, D), now=0.0)
    assert gamification.get("u1") == GamificationStats(30, 3, 3, D)
    assert gamification.get("nobody") == GamificationStats()
