"""
Learning Engine - wires the scheduler components into one data flow.

A completed session:
1. grades review items (SpacedRepetitionScheduler)
2. folds outcomes into band performance and refreshes gates
3. evaluates promotion/demotion (BandProgressionStateMachine)
4. advances domain completion, streak, XP and badges

The next day's DailyMix and recommendations are then derived from the
updated snapshot. The content sections of daily plans are memoized in an
injected DecisionCache, invalidated whenever a session completes for that
learner; review sections are always rebuilt.

The engine performs no I/O; callers persist the returned state.
"""
from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from loguru import logger

from bandwise.adaptive.band_progression import BandEvaluation, BandProgressionStateMachine
from bandwise.adaptive.domain_progression import DomainProgression
from bandwise.config import Settings, get_settings
from bandwise.core.cache import DecisionCache, MemoryCacheBackend
from bandwise.core.models import (
    ActivityRecord,
    CompletionForecast,
    DailyMix,
    DomainState,
    GateProgress,
    LearnerProfile,
    LearnerSnapshot,
    Recommendation,
    ReviewItem,
    RotationProgress,
)
from bandwise.planning.daily_mix import DailyMixPlanner
from bandwise.planning.recommendations import PriorityRecommendationEngine, RecommendationContext
from bandwise.planning.rotation_tracker import RotationDeadlineTracker
from bandwise.study.gamification import award_xp, xp_for_answer
from bandwise.study.spaced_repetition import PASSING_GRADE, SpacedRepetitionScheduler
from bandwise.study.streak import StreakEvent, StreakTracker


GATE_NAMES = frozenset(GateProgress().missing())


@dataclass
class ReviewGrade:
    """A graded review of an existing item."""
    item_id: str
    grade: int
    time_spent_seconds: float = 0.0
    hints_used: int = 0


@dataclass
class AnswerRecord:
    """An answered new-content item."""
    content_id: str
    domain: str
    correct: bool
    time_spent_seconds: float = 0.0
    hints_used: int = 0
    goal_ids: list[str] = field(default_factory=list)


@dataclass
class SessionResult:
    reviews: list[ReviewGrade] = field(default_factory=list)
    answers: list[AnswerRecord] = field(default_factory=list)
    gates_passed: list[str] = field(default_factory=list)


@dataclass
class SessionOutcome:
    profile: LearnerProfile
    review_items: list[ReviewItem]
    band: BandEvaluation
    streak_event: StreakEvent
    xp_earned: int
    activity: list[ActivityRecord]


class LearningEngine:
    """
    Facade over the scheduler components.

    Args:
        settings: Settings or None for the cached environment settings
        rng: Random source for interleaving (seeded from settings when None)
        cache: DecisionCache for daily plans (in-memory when None)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
        cache: Optional[DecisionCache] = None,
    ):
        self.settings = settings or get_settings()
        s = self.settings

        self.scheduler = SpacedRepetitionScheduler(s.get_srs_config())
        self.bands = BandProgressionStateMachine(s.get_band_config())
        self.domains = DomainProgression(s.get_domain_config())
        self.streaks = StreakTracker(s.get_streak_config())
        self.tracker = RotationDeadlineTracker(s.get_rotation_config())
        self.planner = DailyMixPlanner(
            s.get_mix_config(),
            scheduler=self.scheduler,
            rng=rng if rng is not None else random.Random(s.random_seed),
        )
        self.recommender = PriorityRecommendationEngine(
            s.get_recommendation_config(),
            scheduler=self.scheduler,
            tracker=self.tracker,
        )
        self.cache = cache or DecisionCache(
            MemoryCacheBackend(max_size=s.cache_max_size),
            ttl_seconds=s.cache_ttl_seconds,
        )

    # =========================================================================
    # Session completion
    # =========================================================================

    def complete_session(
        self,
        snapshot: LearnerSnapshot,
        session: SessionResult,
        now: Optional[datetime] = None,
    ) -> SessionOutcome:
        """
        Apply a completed session to the learner's state.

        Args:
            snapshot: Learner state before the session
            session: Graded reviews, answered items and passed gates
            now: Session completion time

        Returns:
            SessionOutcome with the updated profile and review items
        """
        now = now or datetime.now()
        profile = snapshot.profile
        band = profile.band_status.current_band
        hint_multiplier = (
            self.planner.config.recovery_hint_factor if profile.band_status.recovery_pending else 1.0
        )
        rotation_id = snapshot.rotation.id if snapshot.rotation else None

        items = {item.id: item for item in snapshot.review_items}
        outcomes: list[bool] = []
        activity: list[ActivityRecord] = []
        xp = 0

        # 1. Grade reviews
        for review in session.reviews:
            item = items.get(review.item_id)
            if item is None:
                logger.warning(f"Review for unknown item {review.item_id} ignored")
                continue
            updated = self.scheduler.grade(
                item,
                review.grade,
                time_spent_seconds=review.time_spent_seconds,
                hints_used=review.hints_used,
                now=now,
                hint_penalty_multiplier=hint_multiplier,
            )
            items[item.id] = updated
            correct = updated.last_grade >= PASSING_GRADE
            outcomes.append(correct)
            xp += xp_for_answer(
                correct, band, review.hints_used, review.time_spent_seconds,
                hint_penalty_multiplier=hint_multiplier,
                multipliers=self.settings.band_multipliers,
            )
            activity.append(ActivityRecord(item.id, correct, now, item.domain, rotation_id=rotation_id))

        # 2. New content creates review items on first exposure
        for answer in session.answers:
            if answer.content_id not in items:
                items[answer.content_id] = ReviewItem.new(
                    answer.content_id,
                    answer.content_id,
                    answer.domain,
                    now,
                    initial_stability=self.scheduler.config.initial_stability,
                )
            outcomes.append(answer.correct)
            xp += xp_for_answer(
                answer.correct, band, answer.hints_used, answer.time_spent_seconds,
                hint_penalty_multiplier=hint_multiplier,
                multipliers=self.settings.band_multipliers,
            )
            activity.append(
                ActivityRecord(
                    answer.content_id,
                    answer.correct,
                    now,
                    answer.domain,
                    goal_ids=list(answer.goal_ids),
                    rotation_id=rotation_id,
                )
            )

        review_items = list(items.values())

        # 3. Gates and band evaluation
        gates = self._apply_gates(profile.band_status.gate_progress, session.gates_passed)
        gates = self.domains.refresh_srs_gate(gates, review_items)
        band_status = self.bands.record_outcomes(
            replace(profile.band_status, gate_progress=gates), outcomes
        )

        statuses = self.domains.record_completions(
            profile.domain_statuses, [a.domain for a in session.answers]
        )
        for status in list(statuses):
            if status.status is DomainState.GATED:
                statuses = self.domains.complete_domain(statuses, status.domain, gates)

        evaluation = self.bands.evaluate(band_status, now.date())

        # 4. Streak, XP and badges
        streak = self.streaks.update_streak(profile.gamification, now)
        gamification = award_xp(streak.state, xp)

        practiced = [a.domain for a in reversed(activity) if a.domain]
        recent = list(dict.fromkeys([*practiced, *profile.recent_domains]))

        updated_profile = replace(
            profile,
            band_status=evaluation.status,
            gamification=gamification,
            domain_statuses=statuses,
            recent_domains=recent,
        )

        self.cache.invalidate(f"{profile.learner_id}:")
        logger.info(
            f"Session complete for {profile.learner_id}: {len(outcomes)} graded, "
            f"+{xp} XP, band {evaluation.status.current_band.value} ({evaluation.decision.value}), "
            f"streak {gamification.streak}"
        )

        return SessionOutcome(
            profile=updated_profile,
            review_items=review_items,
            band=evaluation,
            streak_event=streak.event,
            xp_earned=xp,
            activity=activity,
        )

    @staticmethod
    def _apply_gates(gates: GateProgress, passed: list[str]) -> GateProgress:
        known = [name for name in passed if name in GATE_NAMES]
        for name in set(passed) - GATE_NAMES:
            logger.warning(f"Unknown gate {name!r} ignored")
        if not known:
            return gates
        return replace(gates, **{name: True for name in known})

    # =========================================================================
    # Derived output
    # =========================================================================

    def plan_day(self, snapshot: LearnerSnapshot, now: Optional[datetime] = None) -> DailyMix:
        """
        The learner's DailyMix for ``now``.

        Content sections are cached per learner, day and profile/content
        digest so the interleaving pick stays stable within a day. The review
        section is rebuilt on every call from the snapshot's items at ``now``.
        """
        now = now or datetime.now()
        key = self._plan_key(snapshot, now)

        cached = self.cache.get(key)
        if cached is not None:
            return replace(
                cached,
                review=self.planner.review_section(
                    snapshot.review_items, cached.target_band, snapshot.profile.daily_minutes, now
                ),
                leech_items=self.planner.leech_items(snapshot.review_items),
            )

        mix = self.planner.generate(
            snapshot.profile,
            snapshot.review_items,
            snapshot.profile.domain_statuses,
            now=now,
            available_content=snapshot.available_content,
        )
        self.cache.set(key, mix)
        return mix

    @staticmethod
    def _plan_key(snapshot: LearnerSnapshot, now: datetime) -> str:
        profile = snapshot.profile
        serialized = repr((profile, sorted(snapshot.available_content.items())))
        digest = hashlib.sha256(serialized.encode()).hexdigest()[:16]
        return f"{profile.learner_id}:mix:{now.date().isoformat()}:{digest}"

    def recommend(
        self,
        snapshot: LearnerSnapshot,
        now: Optional[datetime] = None,
        available_minutes: Optional[int] = None,
    ) -> list[Recommendation]:
        context = RecommendationContext(
            profile=snapshot.profile,
            now=now or datetime.now(),
            review_items=snapshot.review_items,
            activity_log=snapshot.activity_log,
            rotation=snapshot.rotation,
            goals=snapshot.goals,
            last_session_at=snapshot.last_session_at,
            available_minutes=available_minutes,
        )
        return self.recommender.generate(context)

    def rotation_report(
        self,
        snapshot: LearnerSnapshot,
        now: Optional[datetime] = None,
    ) -> Optional[tuple[RotationProgress, CompletionForecast]]:
        if snapshot.rotation is None:
            return None
        progress = self.tracker.calculate_progress(
            snapshot.rotation, snapshot.activity_log, now or datetime.now(), snapshot.goals
        )
        return progress, self.tracker.predict_completion(snapshot.rotation, progress)
