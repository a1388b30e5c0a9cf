"""
Unit tests for XP awards, level curve and badges.
"""
import pytest

from bandwise.core.models import Band, GamificationState
from bandwise.study.gamification import (
    MAX_LEVEL,
    award_xp,
    grant_badges,
    level_for_xp,
    xp_for_answer,
    xp_for_level,
    xp_to_next_level,
)


class TestLevelCurve:
    @pytest.mark.parametrize(
        "level, xp",
        [(1, 0), (2, 100), (3, 200), (4, 450), (10, 4050)],
    )
    def test_xp_for_level(self, level, xp):
        assert xp_for_level(level) == xp

    @pytest.mark.parametrize("xp, level", [(0, 1), (99, 1), (100, 2), (449, 3), (450, 4)])
    def test_level_for_xp(self, xp, level):
        assert level_for_xp(xp) == level

    def test_level_capped(self):
        assert level_for_xp(10_000_000) == MAX_LEVEL
        assert xp_to_next_level(10_000_000) == 0

    def test_xp_to_next_level(self):
        assert xp_to_next_level(150) == 50


class TestAnswerXP:
    def test_correct_band_c_no_hints_normal_pace(self):
        assert xp_for_answer(True, Band.C, hints_used=0, time_spent_seconds=60) == 10

    def test_band_multiplier(self):
        assert xp_for_answer(True, Band.E, time_spent_seconds=60) == 15
        assert xp_for_answer(True, Band.A, time_spent_seconds=60) == 8

    def test_fast_bonus(self):
        assert xp_for_answer(True, Band.C, time_spent_seconds=20) == 13

    def test_slow_penalty(self):
        assert xp_for_answer(True, Band.C, time_spent_seconds=300) == 9

    def test_hints_floor(self):
        assert xp_for_answer(True, Band.C, hints_used=10, time_spent_seconds=60) == 5

    def test_softened_hint_penalty(self):
        normal = xp_for_answer(True, Band.C, hints_used=2, time_spent_seconds=60)
        soft = xp_for_answer(True, Band.C, hints_used=2, time_spent_seconds=60, hint_penalty_multiplier=0.5)
        assert soft > normal

    def test_incorrect(self):
        assert xp_for_answer(False, Band.A) == 1
        assert xp_for_answer(False, Band.E) == 2


class TestBadges:
    def test_award_xp_levels_up(self):
        updated = award_xp(GamificationState(xp=90), 20)
        assert updated.xp == 110
        assert updated.level == 2

    def test_week_warrior(self):
        updated = grant_badges(GamificationState(streak=7))
        assert updated.badges == ["week_warrior"]

    def test_badges_not_duplicated(self):
        state = GamificationState(streak=9, badges=["week_warrior"])
        assert grant_badges(state) is state

    def test_level_badges(self):
        updated = award_xp(GamificationState(), xp_for_level(25))
        assert "level_10" in updated.badges
        assert "level_25" in updated.badges
        assert "max_level" not in updated.badges
