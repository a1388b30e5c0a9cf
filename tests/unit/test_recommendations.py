"""
Unit tests for the priority recommendation engine.
"""
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from bandwise.core.models import (
    ActivityRecord,
    Band,
    BandStatus,
    Goal,
    Priority,
    RecentPerformance,
    RecommendationType,
    Rotation,
)
from bandwise.planning.recommendations import (
    PriorityRecommendationEngine,
    RecommendationConfig,
    RecommendationContext,
)

NOW = datetime(2025, 3, 3, 9, 0)


@pytest.fixture
def engine():
    return PriorityRecommendationEngine()


def make_rotation(days_remaining=30, days_elapsed=60, goal_ids=None):
    return Rotation(
        id="rot-1",
        name="Surgery",
        domain="trauma",
        start_date=NOW.date() - timedelta(days=days_elapsed),
        end_date=NOW.date() + timedelta(days=days_remaining),
        goal_ids=goal_ids if goal_ids is not None else [f"g{i}" for i in range(1, 11)],
    )


def activity(count, hours_ago=1.0, goal_id=None, correct=True):
    return [
        ActivityRecord(
            item_id=f"q{i}",
            correct=correct,
            timestamp=NOW - timedelta(hours=hours_ago, minutes=i),
            domain="trauma",
            goal_ids=[goal_id] if goal_id else [],
            rotation_id="rot-1",
        )
        for i in range(count)
    ]


def ids(recommendations):
    return [r.id for r in recommendations]


def assert_sorted(recommendations):
    ranks = [r.priority.rank for r in recommendations]
    assert ranks == sorted(ranks, reverse=True)


class TestRanking:
    def test_capped_and_sorted(self, engine, profile, make_item):
        context = RecommendationContext(
            profile=profile,
            now=NOW,
            review_items=[make_item(f"c{i}", days_ago=5, interval=2) for i in range(12)],
            activity_log=activity(3, hours_ago=30),
            rotation=make_rotation(days_remaining=5),
            goals=[Goal("g1", "Suturing"), Goal("g2", "Casting", required=False)],
        )
        result = engine.generate(context)
        assert len(result) == 5
        assert_sorted(result)

    def test_deterministic(self, engine, profile, make_item):
        context = RecommendationContext(
            profile=profile,
            now=NOW,
            review_items=[make_item(f"c{i}", days_ago=5, interval=2) for i in range(3)],
            rotation=make_rotation(),
        )
        assert engine.generate(context) == engine.generate(context)

    def test_ties_keep_emission_order(self, engine, profile, make_item):
        context = RecommendationContext(
            profile=profile,
            now=NOW,
            review_items=[make_item("c1", days_ago=5, interval=2)],
        )
        result = engine.generate(context)
        # review (scorer 2), weak domain (4), time of day (6) are all medium
        mediums = [r.id for r in result if r.priority is Priority.MEDIUM]
        assert mediums == ["review-backlog", "weak-cardiology", "time-morning"]

    def test_cap_is_configurable(self, profile):
        engine = PriorityRecommendationEngine(RecommendationConfig(max_recommendations=2))
        context = RecommendationContext(profile=profile, now=NOW, rotation=make_rotation())
        assert len(engine.generate(context)) <= 2

    def test_empty_context(self, engine, profile):
        quiet = replace(profile, domain_statuses=[], band_status=BandStatus())
        night = NOW.replace(hour=23)
        assert engine.generate(RecommendationContext(profile=quiet, now=night)) == []


class TestRotationUrgency:
    def test_behind_schedule_is_high_with_daily_target(self, engine, profile):
        log = activity(3, hours_ago=48, goal_id="g1") + activity(3, hours_ago=72, goal_id="g2")
        context = RecommendationContext(profile=profile, now=NOW, activity_log=log, rotation=make_rotation(30))

        rec = next(r for r in engine.generate(context) if r.type is RecommendationType.ROTATION_URGENT)

        assert rec.priority is Priority.HIGH
        assert rec.daily_target == 5
        assert rec.target_domain == "trauma"
        assert "2/10 goals" in rec.reasoning

    def test_final_week_is_critical(self, engine, profile):
        context = RecommendationContext(profile=profile, now=NOW, rotation=make_rotation(days_remaining=4))
        result = engine.generate(context)
        assert result[0].id == "rotation-rot-1"
        assert result[0].priority is Priority.CRITICAL
        assert result[0].daily_target == 25

    def test_comfortable_rotation_emits_nothing(self, engine, profile):
        rotation = make_rotation(days_remaining=80, days_elapsed=0)
        context = RecommendationContext(profile=profile, now=NOW, rotation=rotation)
        assert engine.score_rotation_urgency(context) == []


class TestReviewBacklog:
    def test_small_backlog_is_medium(self, engine, profile, make_item):
        items = [make_item(f"c{i}", days_ago=5, interval=2) for i in range(3)]
        recs = engine.score_review_backlog(RecommendationContext(profile=profile, now=NOW, review_items=items))
        assert recs[0].priority is Priority.MEDIUM
        assert recs[0].estimated_minutes == 6
        assert recs[0].reward_xp == 15

    def test_large_backlog_is_high(self, engine, profile, make_item):
        items = [make_item(f"c{i}", days_ago=5, interval=2) for i in range(11)]
        recs = engine.score_review_backlog(RecommendationContext(profile=profile, now=NOW, review_items=items))
        assert recs[0].priority is Priority.HIGH
        assert recs[0].estimated_minutes == 22

    def test_leeches_get_remedial(self, engine, profile, make_item):
        items = [make_item("leech", fail_count=3, is_leech=True, days_ago=5, interval=1)]
        recs = engine.score_review_backlog(RecommendationContext(profile=profile, now=NOW, review_items=items))
        assert [r.type for r in recs] == [RecommendationType.REMEDIAL]
        assert recs[0].target_domain == "trauma"


class TestGoals:
    def test_required_goals_first(self, engine, profile):
        goals = [Goal("opt", "Optional", required=False), Goal("req", "Required")]
        recs = engine.score_goals(RecommendationContext(profile=profile, now=NOW, goals=goals))
        assert ids(recs) == ["goal-req", "goal-opt"]
        assert recs[0].priority.rank > recs[1].priority.rank

    def test_completed_goals_skipped(self, engine, profile):
        goals = [Goal("g1", "Done"), Goal("g2", "Pending")]
        log = activity(3, hours_ago=48, goal_id="g1")
        context = RecommendationContext(
            profile=profile, now=NOW, goals=goals, activity_log=log,
            rotation=make_rotation(goal_ids=["g1", "g2"]),
        )
        assert ids(engine.score_goals(context)) == ["goal-g2"]


class TestWeakDomains:
    def test_weakest_and_second(self, engine, profile):
        recs = engine.score_weak_domains(RecommendationContext(profile=profile, now=NOW))
        assert [(r.target_domain, r.priority) for r in recs] == [
            ("cardiology", Priority.MEDIUM),
            ("trauma", Priority.LOW),
        ]

    def test_rotation_domain_prioritized(self, engine, profile):
        context = RecommendationContext(profile=profile, now=NOW, rotation=make_rotation(days_remaining=90))
        recs = engine.score_weak_domains(context)
        assert recs[0].target_domain == "trauma"
        assert recs[0].priority is Priority.HIGH


class TestFatigue:
    def test_rest_forced_over_everything(self, engine, profile, make_item):
        weak_trauma = [replace(profile.domain_statuses[0], items_completed=2)] + profile.domain_statuses[1:]
        busy = replace(profile, domain_statuses=weak_trauma)
        context = RecommendationContext(
            profile=busy,
            now=NOW,
            review_items=[make_item(f"c{i}", days_ago=5, interval=2) for i in range(15)],
            activity_log=activity(7, hours_ago=2),
            rotation=make_rotation(days_remaining=3),
            goals=[Goal("g1", "A"), Goal("g2", "B")],
        )

        result = engine.generate(context)

        assert "rest-break" in ids(result)
        assert len(result) == 5
        assert_sorted(result)

    def test_threshold_not_exceeded(self, engine, profile):
        context = RecommendationContext(profile=profile, now=NOW, activity_log=activity(5))
        assert engine.score_fatigue(context) == []

    def test_old_activity_ignored(self, engine, profile):
        context = RecommendationContext(profile=profile, now=NOW, activity_log=activity(9, hours_ago=25))
        assert engine.trailing_activity_count(context) == 0

    def test_heavy_load_is_critical(self, engine, profile):
        context = RecommendationContext(profile=profile, now=NOW, activity_log=activity(10))
        assert engine.score_fatigue(context)[0].priority is Priority.CRITICAL

    def test_short_break_after_recent_session(self, engine, profile):
        context = RecommendationContext(profile=profile, now=NOW, last_session_at=NOW - timedelta(minutes=20))
        assert ids(engine.score_fatigue(context)) == ["short-break"]


class TestTimeOfDay:
    @pytest.mark.parametrize(
        "hour, expected",
        [(8, ["time-morning"]), (14, ["time-afternoon"]), (19, ["time-evening"]), (2, [])],
    )
    def test_periods(self, engine, profile, hour, expected):
        context = RecommendationContext(profile=profile, now=NOW.replace(hour=hour))
        assert ids(engine.score_time_of_day(context)) == expected

    def test_available_minutes_used(self, engine, profile):
        context = RecommendationContext(profile=profile, now=NOW, available_minutes=45)
        assert engine.score_time_of_day(context)[0].estimated_minutes == 45


class TestChallenge:
    def test_high_performer_at_band_c(self, engine, profile):
        strong = replace(
            profile,
            band_status=BandStatus(Band.C, recent_performance=RecentPerformance(0.9, 15)),
        )
        recs = engine.score_challenge(RecommendationContext(profile=strong, now=NOW))
        assert ids(recs) == ["challenge"]
        assert recs[0].priority is Priority.LOW

    def test_low_band_gets_no_challenge(self, engine, profile):
        strong = replace(
            profile,
            band_status=BandStatus(Band.B, recent_performance=RecentPerformance(0.95, 15)),
        )
        assert engine.score_challenge(RecommendationContext(profile=strong, now=NOW)) == []
