"""
Priority Recommendation Engine.

Seven independent scorers each emit zero or more candidate actions:

1. Rotation deadline urgency
2. Review backlog pressure (plus remedial work for leeches)
3. Goal priority (required before optional)
4. Weak-domain detection
5. Fatigue detection (forced rest under heavy trailing-24h load)
6. Time-of-day heuristic
7. Challenge for high performers

Candidates are stably sorted by tier (emission order breaks ties) and the
list is capped. A forced rest recommendation always survives the cap.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from loguru import logger

from bandwise.core.models import (
    ActionType,
    ActivityRecord,
    DomainStatus,
    Goal,
    LearnerProfile,
    Priority,
    Recommendation,
    RecommendationType,
    ReviewItem,
    Rotation,
    TimeOfDay,
)
from bandwise.planning.rotation_tracker import RotationDeadlineTracker
from bandwise.study.spaced_repetition import SpacedRepetitionScheduler


@dataclass
class RecommendationConfig:
    max_recommendations: int = 5
    review_backlog_high: int = 10
    minutes_per_review: int = 2
    max_review_minutes: int = 30
    xp_per_review: int = 5
    max_goal_recommendations: int = 2
    weak_domain_threshold: float = 0.7
    second_weak_threshold: float = 0.6
    fatigue_window_hours: int = 24
    fatigue_threshold: int = 5
    short_break_minutes: int = 60
    challenge_accuracy: float = 0.85
    challenge_min_band: int = 3
    default_session_minutes: int = 20


@dataclass
class RecommendationContext:
    """Snapshot the scorers read from."""
    profile: LearnerProfile
    now: datetime
    review_items: list[ReviewItem] = field(default_factory=list)
    activity_log: list[ActivityRecord] = field(default_factory=list)
    rotation: Optional[Rotation] = None
    goals: list[Goal] = field(default_factory=list)
    last_session_at: Optional[datetime] = None
    available_minutes: Optional[int] = None

    @property
    def domain_statuses(self) -> list[DomainStatus]:
        return self.profile.domain_statuses


Scorer = Callable[[RecommendationContext], list[Recommendation]]


class PriorityRecommendationEngine:
    def __init__(
        self,
        config: Optional[RecommendationConfig] = None,
        scheduler: Optional[SpacedRepetitionScheduler] = None,
        tracker: Optional[RotationDeadlineTracker] = None,
    ):
        self.config = config or RecommendationConfig()
        self.scheduler = scheduler or SpacedRepetitionScheduler()
        self.tracker = tracker or RotationDeadlineTracker()

    @property
    def scorers(self) -> list[Scorer]:
        """Scorers in emission order."""
        return [
            self.score_rotation_urgency,
            self.score_review_backlog,
            self.score_goals,
            self.score_weak_domains,
            self.score_fatigue,
            self.score_time_of_day,
            self.score_challenge,
        ]

    def generate(self, context: RecommendationContext) -> list[Recommendation]:
        """
        Rank the day's top actions.

        Args:
            context: Learner snapshot and current time

        Returns:
            At most ``max_recommendations`` items, highest tier first
        """
        candidates: list[Recommendation] = []
        for scorer in self.scorers:
            candidates.extend(scorer(context))

        ranked = sorted(candidates, key=lambda r: -r.priority.rank)
        selected = ranked[: self.config.max_recommendations]

        rest = next((r for r in ranked if r.id == "rest-break"), None)
        if rest is not None and rest not in selected and selected:
            # every kept item ranks at or above the rest tier, so order holds
            selected[-1] = rest

        logger.debug(
            f"Recommendations: {len(candidates)} candidates -> "
            + ", ".join(f"{r.id}[{r.priority.value}]" for r in selected)
        )
        return selected

    # =========================================================================
    # Scorers
    # =========================================================================

    def score_rotation_urgency(self, context: RecommendationContext) -> list[Recommendation]:
        rotation = context.rotation
        if rotation is None:
            return []

        progress = self.tracker.calculate_progress(
            rotation, context.activity_log, context.now, context.goals
        )
        urgency = self.tracker.urgency(progress)
        if urgency is Priority.LOW:
            return []

        forecast = self.tracker.predict_completion(rotation, progress)
        focus_goals = self.tracker.priority_goals(rotation, context.activity_log)
        days = progress.days_remaining

        if urgency is Priority.CRITICAL:
            title = f"{rotation.name} ends in {days} day(s)!"
            minutes = forecast.daily_target * 2
            xp = 100
        elif urgency is Priority.HIGH:
            title = f"Focus on {rotation.domain}: {days} days left in {rotation.name}"
            minutes = 20
            xp = 50
        else:
            title = f"Catch up on {rotation.name}"
            minutes = 15
            xp = 30

        reasoning = (
            f"{len(progress.goals_completed)}/{progress.total_goals} goals completed "
            f"({progress.completion_percentage:.0f}% vs {progress.expected_completion:.0f}% expected). "
            f"Answer {forecast.daily_target} items per day to finish on time."
        )
        return [
            Recommendation(
                id=f"rotation-{rotation.id}",
                type=RecommendationType.ROTATION_URGENT,
                priority=urgency,
                title=title,
                reasoning=reasoning,
                estimated_minutes=minutes,
                reward_xp=xp,
                action_type=ActionType.PRACTICE_QUIZ,
                target_domain=rotation.domain,
                related_goal_ids=focus_goals,
                daily_target=forecast.daily_target,
            )
        ]

    def score_review_backlog(self, context: RecommendationContext) -> list[Recommendation]:
        cfg = self.config
        due = [
            item for item in self.scheduler.due_items(context.review_items, context.now)
            if not item.is_leech
        ]
        leeches = self.scheduler.detect_leeches(context.review_items)
        results = []

        if due:
            count = len(due)
            results.append(
                Recommendation(
                    id="review-backlog",
                    type=RecommendationType.REVIEW,
                    priority=Priority.HIGH if count > cfg.review_backlog_high else Priority.MEDIUM,
                    title=f"Review {count} due card(s)",
                    reasoning="Reviewing on time keeps retention high and the backlog small.",
                    estimated_minutes=min(count * cfg.minutes_per_review, cfg.max_review_minutes),
                    reward_xp=count * cfg.xp_per_review,
                    action_type=ActionType.REVIEW_CARDS,
                )
            )

        if leeches:
            domains = sorted({item.domain for item in leeches})
            results.append(
                Recommendation(
                    id="remedial-leeches",
                    type=RecommendationType.REMEDIAL,
                    priority=Priority.MEDIUM,
                    title=f"Rework {len(leeches)} repeatedly missed card(s)",
                    reasoning="These cards keep failing; revisit the underlying material before reviewing again.",
                    estimated_minutes=15,
                    reward_xp=20,
                    action_type=ActionType.LEARN_NEW,
                    target_domain=domains[0] if len(domains) == 1 else None,
                )
            )
        return results

    def score_goals(self, context: RecommendationContext) -> list[Recommendation]:
        if not context.goals:
            return []

        if context.rotation is not None:
            progress = self.tracker.calculate_progress(
                context.rotation, context.activity_log, context.now, context.goals
            )
            completed = set(progress.goals_completed)
            relevant = set(context.rotation.goal_ids)
            pending = [g for g in context.goals if g.id in relevant and g.id not in completed]
            domain = context.rotation.domain
        else:
            pending = list(context.goals)
            domain = None

        # stable: required goals first, catalog order otherwise
        pending.sort(key=lambda g: not g.required)

        results = []
        for goal in pending[: self.config.max_goal_recommendations]:
            results.append(
                Recommendation(
                    id=f"goal-{goal.id}",
                    type=RecommendationType.GOAL,
                    priority=Priority.HIGH if goal.required else Priority.MEDIUM,
                    title=f"Goal: {goal.title or goal.id}",
                    reasoning=(
                        "Required goal for your placement."
                        if goal.required else "Optional goal that broadens your placement."
                    ),
                    estimated_minutes=20,
                    reward_xp=45 if goal.required else 30,
                    action_type=ActionType.START_CASE,
                    target_domain=domain,
                    related_goal_ids=[goal.id],
                )
            )
        return results

    def score_weak_domains(self, context: RecommendationContext) -> list[Recommendation]:
        cfg = self.config
        rotation_domain = context.rotation.domain if context.rotation else None
        weak = sorted(
            (
                s for s in context.domain_statuses
                if s.is_open and s.completion_rate < cfg.weak_domain_threshold
            ),
            key=lambda s: (s.domain != rotation_domain, s.completion_rate, s.domain),
        )
        if not weak:
            return []

        weakest = weak[0]
        is_rotation = weakest.domain == rotation_domain
        results = [
            Recommendation(
                id=f"weak-{weakest.domain}",
                type=RecommendationType.DOMAIN,
                priority=Priority.HIGH if is_rotation else Priority.MEDIUM,
                title=(
                    f"Strengthen {weakest.domain} for your rotation"
                    if is_rotation else f"Strengthen {weakest.domain}"
                ),
                reasoning=f"{weakest.domain} is only {weakest.completion_rate:.0%} complete.",
                estimated_minutes=15,
                reward_xp=40 if is_rotation else 30,
                action_type=ActionType.PRACTICE_QUIZ,
                target_domain=weakest.domain,
            )
        ]

        if len(weak) > 1 and weak[1].completion_rate < cfg.second_weak_threshold:
            second = weak[1]
            results.append(
                Recommendation(
                    id=f"weak-{second.domain}",
                    type=RecommendationType.DOMAIN,
                    priority=Priority.LOW,
                    title=f"Practice {second.domain}",
                    reasoning=f"{second.domain} is {second.completion_rate:.0%} complete.",
                    estimated_minutes=15,
                    reward_xp=25,
                    action_type=ActionType.PRACTICE_QUIZ,
                    target_domain=second.domain,
                )
            )
        return results

    def trailing_activity_count(self, context: RecommendationContext) -> int:
        since = context.now - timedelta(hours=self.config.fatigue_window_hours)
        return sum(1 for a in context.activity_log if since < a.timestamp <= context.now)

    def score_fatigue(self, context: RecommendationContext) -> list[Recommendation]:
        cfg = self.config
        count = self.trailing_activity_count(context)

        if count > cfg.fatigue_threshold:
            priority = Priority.CRITICAL if count >= 2 * cfg.fatigue_threshold else Priority.HIGH
            logger.info(f"Fatigue detected: {count} activities in the last {cfg.fatigue_window_hours}h")
            return [
                Recommendation(
                    id="rest-break",
                    type=RecommendationType.BREAK,
                    priority=priority,
                    title="Take a break",
                    reasoning=(
                        f"You have completed {count} activities in the last "
                        f"{cfg.fatigue_window_hours} hours. Rest consolidates what you learned."
                    ),
                    estimated_minutes=15,
                    reward_xp=10,
                    action_type=ActionType.TAKE_BREAK,
                )
            ]

        last = context.last_session_at
        if last is not None and timedelta(0) <= context.now - last < timedelta(minutes=cfg.short_break_minutes):
            return [
                Recommendation(
                    id="short-break",
                    type=RecommendationType.BREAK,
                    priority=Priority.MEDIUM,
                    title="Short break recommended",
                    reasoning="You finished a session less than an hour ago.",
                    estimated_minutes=10,
                    reward_xp=5,
                    action_type=ActionType.TAKE_BREAK,
                )
            ]
        return []

    def score_time_of_day(self, context: RecommendationContext) -> list[Recommendation]:
        period = TimeOfDay.from_hour(context.now.hour)
        minutes = context.available_minutes or self.config.default_session_minutes

        if period is TimeOfDay.MORNING:
            rec = Recommendation(
                id="time-morning",
                type=RecommendationType.TOPIC,
                priority=Priority.MEDIUM,
                title="Learn new material",
                reasoning="Mornings suit new material while attention is fresh.",
                estimated_minutes=minutes,
                reward_xp=35,
                action_type=ActionType.LEARN_NEW,
            )
        elif period is TimeOfDay.AFTERNOON:
            rec = Recommendation(
                id="time-afternoon",
                type=RecommendationType.TOPIC,
                priority=Priority.MEDIUM,
                title="Practice clinical cases",
                reasoning="Afternoons suit applying knowledge to cases.",
                estimated_minutes=minutes,
                reward_xp=30,
                action_type=ActionType.START_CASE,
            )
        elif period is TimeOfDay.EVENING:
            rec = Recommendation(
                id="time-evening",
                type=RecommendationType.REVIEW,
                priority=Priority.MEDIUM,
                title="Review today's material",
                reasoning="Evening review consolidates the day's learning before sleep.",
                estimated_minutes=minutes,
                reward_xp=25,
                action_type=ActionType.REVIEW_CARDS,
            )
        else:
            return []
        return [rec]

    def score_challenge(self, context: RecommendationContext) -> list[Recommendation]:
        status = context.profile.band_status
        perf = status.recent_performance
        if (
            perf.sample_size > 0
            and perf.correct_rate > self.config.challenge_accuracy
            and status.current_band.ordinal >= self.config.challenge_min_band
        ):
            return [
                Recommendation(
                    id="challenge",
                    type=RecommendationType.CHALLENGE,
                    priority=Priority.LOW,
                    title="Challenge: harder questions",
                    reasoning=f"Your accuracy is {perf.correct_rate:.0%}. Try a harder case.",
                    estimated_minutes=20,
                    reward_xp=50,
                    action_type=ActionType.START_CASE,
                )
            ]
        return []
