"""
Rotation Deadline Tracker.

Measures progress through a time-boxed placement:
- goal completion (enough attempts AND enough recent accuracy)
- time-implied expected completion and whether the learner is on track
- linear pace projection and the daily throughput still required

Inconsistent timelines (end before start) count as zero days remaining so
they surface as maximally urgent instead of failing.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from loguru import logger

from bandwise.core.models import (
    ActivityRecord,
    CompletionForecast,
    Goal,
    Priority,
    Rotation,
    RotationProgress,
)
from bandwise.core.timeutils import as_date, safe_ratio


@dataclass
class RotationConfig:
    min_goal_attempts: int = 3
    goal_accuracy_threshold: float = 0.7
    goal_recent_window: int = 10
    on_track_ratio: float = 0.8
    items_per_goal: int = 10
    min_daily_target: int = 5
    will_complete_threshold: float = 90.0
    excellent_threshold: float = 90.0
    critical_days: int = 7
    high_urgency_days: int = 30


def current_rotation(rotations: Iterable[Rotation], today: date) -> Optional[Rotation]:
    """The rotation whose window contains ``today``, if any."""
    for rotation in rotations:
        if rotation.start_date <= today <= rotation.end_date:
            return rotation
    return None


class RotationDeadlineTracker:
    def __init__(self, config: Optional[RotationConfig] = None):
        self.config = config or RotationConfig()

    # =========================================================================
    # Timeline
    # =========================================================================

    def timeline(self, rotation: Rotation, today: date) -> tuple[int, int, int]:
        """
        Returns:
            (total_days, days_elapsed, days_remaining)
        """
        total = (rotation.end_date - rotation.start_date).days
        if total < 0:
            logger.warning(
                f"Rotation {rotation.id} ends before it starts "
                f"({rotation.start_date} > {rotation.end_date}), treating as due now"
            )
            return 0, 0, 0

        remaining = max(0, min(total, (rotation.end_date - today).days))
        elapsed = total - remaining
        return total, elapsed, remaining

    # =========================================================================
    # Activity
    # =========================================================================

    def rotation_activities(
        self,
        rotation: Rotation,
        activity_log: Iterable[ActivityRecord],
    ) -> list[ActivityRecord]:
        """Activities tagged with the rotation, or untagged ones inside its window."""
        selected = []
        for record in activity_log:
            if record.rotation_id is not None:
                if record.rotation_id == rotation.id:
                    selected.append(record)
            elif rotation.start_date <= as_date(record.timestamp) <= rotation.end_date:
                selected.append(record)
        return sorted(selected, key=lambda r: r.timestamp)

    def goal_attempts(self, goal_id: str, activities: Sequence[ActivityRecord]) -> list[ActivityRecord]:
        return [a for a in activities if goal_id in a.goal_ids]

    def is_goal_completed(self, attempts: Sequence[ActivityRecord], min_attempts: int) -> bool:
        if len(attempts) < min_attempts:
            return False
        recent = list(attempts)[-self.config.goal_recent_window:]
        correct = sum(1 for a in recent if a.correct)
        return safe_ratio(correct, len(recent)) >= self.config.goal_accuracy_threshold

    def _min_attempts(self, goal_id: str, catalog: dict[str, Goal]) -> int:
        goal = catalog.get(goal_id)
        if goal is None:
            return self.config.min_goal_attempts
        return max(self.config.min_goal_attempts, goal.min_attempts)

    # =========================================================================
    # Progress
    # =========================================================================

    def calculate_progress(
        self,
        rotation: Rotation,
        activity_log: Iterable[ActivityRecord],
        now: Optional[datetime] = None,
        goals: Optional[Sequence[Goal]] = None,
    ) -> RotationProgress:
        """
        Calculate progress for a rotation.

        Args:
            rotation: The placement
            activity_log: Answered items (any rotation)
            now: Evaluation time
            goals: Goal catalog supplying per-goal minimum attempts

        Returns:
            RotationProgress
        """
        today = as_date(now or datetime.now())
        catalog = {g.id: g for g in goals or []}
        activities = self.rotation_activities(rotation, activity_log)

        answered = len(activities)
        correct = sum(1 for a in activities if a.correct)

        completed = [
            goal_id for goal_id in rotation.goal_ids
            if self.is_goal_completed(
                self.goal_attempts(goal_id, activities),
                self._min_attempts(goal_id, catalog),
            )
        ]
        total_goals = len(rotation.goal_ids)
        completion = safe_ratio(len(completed), total_goals) * 100

        total_days, elapsed, remaining = self.timeline(rotation, today)
        expected = safe_ratio(elapsed, total_days) * 100 if total_days > 0 else 100.0
        on_track = completion >= expected * self.config.on_track_ratio

        return RotationProgress(
            rotation_id=rotation.id,
            items_answered=answered,
            correct_answers=correct,
            accuracy=safe_ratio(correct, answered),
            goals_completed=completed,
            total_goals=total_goals,
            completion_percentage=completion,
            days_remaining=remaining,
            days_elapsed=elapsed,
            total_days=total_days,
            expected_completion=expected,
            on_track=on_track,
            recommendation_text=self._recommendation_text(completion, on_track, remaining),
        )

    def _recommendation_text(self, completion: float, on_track: bool, days_remaining: int) -> str:
        if completion >= self.config.excellent_threshold:
            return "Excellent! You are well ahead on your rotation goals."
        if on_track:
            return "You are on track. Keep up the current pace."
        if days_remaining > self.config.high_urgency_days:
            return "You are behind schedule. Increase your study pace a little."
        return "Critical phase! Focus on your priority goals over the coming weeks."

    # =========================================================================
    # Forecasting
    # =========================================================================

    def daily_target(self, goals_remaining: int, days_remaining: int) -> int:
        """Items per day needed to finish the remaining goals, floored at the minimum."""
        needed = goals_remaining * self.config.items_per_goal
        required = math.ceil(needed / days_remaining) if days_remaining > 0 else needed
        return max(self.config.min_daily_target, required)

    def predict_completion(self, rotation: Rotation, progress: RotationProgress) -> CompletionForecast:
        """Linearly extrapolate the current pace over the remaining days."""
        needed = progress.goals_remaining * self.config.items_per_goal
        pace = progress.items_answered / max(1, progress.days_elapsed)

        if needed > 0:
            projected_items = pace * progress.days_remaining
            projected = min(100.0, progress.completion_percentage + projected_items / needed * 100)
        else:
            projected = progress.completion_percentage

        forecast = CompletionForecast(
            will_complete=projected >= self.config.will_complete_threshold,
            projected_completion=projected,
            daily_target=self.daily_target(progress.goals_remaining, progress.days_remaining),
            pace_per_day=pace,
        )
        logger.debug(
            f"Rotation {rotation.id}: projected {projected:.0f}% at {pace:.1f} items/day, "
            f"target {forecast.daily_target}/day"
        )
        return forecast

    def urgency(self, progress: RotationProgress) -> Priority:
        if progress.total_goals > 0 and progress.goals_remaining == 0:
            return Priority.LOW
        if progress.days_remaining < self.config.critical_days:
            return Priority.CRITICAL
        if progress.days_remaining <= self.config.high_urgency_days:
            return Priority.HIGH
        if not progress.on_track:
            return Priority.MEDIUM
        return Priority.LOW

    def priority_goals(
        self,
        rotation: Rotation,
        activity_log: Iterable[ActivityRecord],
        limit: int = 3,
    ) -> list[str]:
        """
        Goals most in need of work: unstarted first, then struggling ones.

        Ties keep rotation goal order.
        """
        activities = self.rotation_activities(rotation, activity_log)
        scored = []
        for goal_id in rotation.goal_ids:
            attempts = self.goal_attempts(goal_id, activities)
            accuracy = safe_ratio(sum(1 for a in attempts if a.correct), len(attempts))
            if not attempts:
                score = 1000.0
            elif accuracy < 0.5:
                score = 500 + (1 - accuracy) * 100
            elif accuracy < self.config.goal_accuracy_threshold:
                score = 200 + (1 - accuracy) * 100
            else:
                score = float(len(attempts))
            scored.append((goal_id, score))

        scored.sort(key=lambda pair: pair[1], reverse=True)
        return [goal_id for goal_id, _ in scored[:limit]]
