"""
Spaced Repetition Scheduler.

Per-item memory model used by the daily planner and the recommendation
engine:
- grade(): applies a 0-5 review grade and reschedules the item
- forgetting_probability(): estimated chance the item has been forgotten
- due_items() / prioritize(): what to review now, most at-risk first
- detect_leeches(): items failed so often they need remedial handling

The model is a tunable heuristic rather than SM-2 or FSRS. Stability is a
normalized retention strength in [0, 1]:
- success (grade >= 3) closes a share of the gap to 1.0, shrunk by hints
  and slow answers; the interval grows with the new stability
- failure (grade < 3) decays stability multiplicatively and resets the
  interval to the minimum
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Iterable, Optional

from loguru import logger

from bandwise.core.models import ReviewItem
from bandwise.core.timeutils import elapsed_days


MIN_GRADE = 0
MAX_GRADE = 5
PASSING_GRADE = 3


@dataclass
class SRSConfig:
    """Coefficients for the memory model."""
    initial_stability: float = 0.3
    success_gain: float = 0.5
    grade_factors: dict[int, float] = field(
        default_factory=lambda: {3: 0.6, 4: 0.8, 5: 1.0}
    )
    hint_penalty: float = 0.25  # per hint
    min_hint_factor: float = 0.25
    slow_answer_seconds: float = 180.0
    slow_answer_factor: float = 0.9
    failure_decay: float = 0.6
    interval_growth: float = 2.5
    min_interval_days: int = 1
    max_interval_days: int = 180
    leech_threshold: int = 2  # leech once fail_count exceeds this
    forgetting_scale: float = 2.0
    min_forgetting_stability: float = 0.05


def clamp_grade(grade: object) -> int:
    """
    Coerce a raw grade into the 0-5 range.

    Non-numeric and NaN input maps to 0.
    """
    try:
        value = float(grade)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        logger.warning(f"Non-numeric grade {grade!r}, treating as 0")
        return MIN_GRADE

    if math.isnan(value):
        logger.warning("NaN grade, treating as 0")
        return MIN_GRADE

    clamped = int(round(max(MIN_GRADE, min(MAX_GRADE, value))))
    if clamped != value:
        logger.warning(f"Grade {grade!r} clamped to {clamped}")
    return clamped


def grade_from_behavior(
    correct: bool,
    hints_used: int = 0,
    time_ratio: float = 1.0,
    confidence: float = 0.5,
) -> int:
    """
    Map observed answer behaviour to a review grade.

    Args:
        correct: Whether the answer was correct
        hints_used: Number of hints requested
        time_ratio: Actual time / expected time (0.5 fast, 2.0 slow)
        confidence: 0-1, self-reported or inferred

    Returns:
        Grade 0-5
    """
    if not correct:
        if confidence < 0.3:
            return 0
        if hints_used >= 2:
            return 1
        return 2

    if hints_used == 0 and time_ratio < 0.8:
        return 5
    if hints_used <= 1 and time_ratio < 1.2:
        return 4
    return 3


class SpacedRepetitionScheduler:
    """Grades reviews and reschedules items."""

    def __init__(self, config: Optional[SRSConfig] = None):
        self.config = config or SRSConfig()

    # =========================================================================
    # Grading
    # =========================================================================

    def grade(
        self,
        item: ReviewItem,
        grade: int,
        time_spent_seconds: float = 0.0,
        hints_used: int = 0,
        now: Optional[datetime] = None,
        hint_penalty_multiplier: float = 1.0,
    ) -> ReviewItem:
        """
        Apply a review grade and return the rescheduled item.

        Args:
            item: Item being reviewed (not modified)
            grade: Raw grade, clamped to 0-5
            time_spent_seconds: Time spent answering
            hints_used: Number of hints requested
            now: Review time (defaults to the current time)
            hint_penalty_multiplier: Softens the hint penalty (recovery days)

        Returns:
            Updated copy of the item
        """
        now = now or datetime.now()
        grade = clamp_grade(grade)
        hints_used = max(0, int(hints_used or 0))
        time_spent_seconds = max(0.0, float(time_spent_seconds or 0.0))
        stability = max(0.0, min(1.0, item.stability))

        if grade >= PASSING_GRADE:
            new_stability = self._stability_after_success(
                stability, grade, time_spent_seconds, hints_used, hint_penalty_multiplier
            )
            new_interval = self._interval_after_success(item.interval, new_stability)
            fail_count = item.fail_count
        else:
            new_stability = stability * self.config.failure_decay
            new_interval = self.config.min_interval_days
            fail_count = item.fail_count + 1

        is_leech = item.is_leech or fail_count > self.config.leech_threshold
        if is_leech and not item.is_leech:
            logger.info(f"Item {item.id} flagged as leech after {fail_count} failures")

        logger.debug(
            f"Graded {item.id}: grade={grade} stability {stability:.3f}->{new_stability:.3f} "
            f"interval {item.interval}->{new_interval}"
        )

        return replace(
            item,
            stability=new_stability,
            interval=new_interval,
            review_count=item.review_count + 1,
            fail_count=fail_count,
            last_reviewed_at=now,
            next_due_at=now + timedelta(days=new_interval),
            is_leech=is_leech,
            last_grade=grade,
        )

    def _stability_after_success(
        self,
        stability: float,
        grade: int,
        time_spent_seconds: float,
        hints_used: int,
        hint_penalty_multiplier: float,
    ) -> float:
        cfg = self.config
        grade_factor = cfg.grade_factors.get(grade, 1.0)
        penalty = cfg.hint_penalty * max(0.0, hint_penalty_multiplier)
        hint_factor = max(cfg.min_hint_factor, 1.0 - penalty * hints_used)
        pace_factor = cfg.slow_answer_factor if time_spent_seconds > cfg.slow_answer_seconds else 1.0

        gain = cfg.success_gain * (1.0 - stability) * grade_factor * hint_factor * pace_factor
        return min(1.0, stability + max(0.0, gain))

    def _interval_after_success(self, interval: int, new_stability: float) -> int:
        cfg = self.config
        base = max(interval, cfg.min_interval_days)
        grown = round(base * (1.0 + cfg.interval_growth * new_stability))
        return min(cfg.max_interval_days, max(interval + 1, grown, cfg.min_interval_days))

    # =========================================================================
    # Prioritization
    # =========================================================================

    def forgetting_probability(self, item: ReviewItem, now: datetime) -> float:
        """
        Estimate the probability the item has been forgotten.

        Grows with time elapsed relative to the interval and shrinks with
        stability. Never-reviewed items return 1.0.
        """
        if item.never_reviewed:
            return 1.0

        cfg = self.config
        elapsed = elapsed_days(item.last_reviewed_at, now)
        ratio = elapsed / max(item.interval, cfg.min_interval_days)
        strength = cfg.forgetting_scale * max(item.stability, cfg.min_forgetting_stability)
        return 1.0 - 1.0 / (1.0 + ratio / strength)

    def due_items(self, items: Iterable[ReviewItem], now: datetime) -> list[ReviewItem]:
        """Items with next_due_at <= now (never-scheduled items are due)."""
        return [item for item in items if item.is_due(now)]

    def prioritize(self, items: Iterable[ReviewItem], now: datetime) -> list[ReviewItem]:
        """Sort items most-at-risk first; ties by due date then id."""
        far_future = datetime.max

        def sort_key(item: ReviewItem):
            due = item.next_due_at or far_future
            return (-self.forgetting_probability(item, now), due, item.id)

        return sorted(items, key=sort_key)

    def detect_leeches(self, items: Iterable[ReviewItem]) -> list[ReviewItem]:
        return [item for item in items if item.is_leech]

    @staticmethod
    def average_stability(items: Iterable[ReviewItem]) -> float:
        values = [item.stability for item in items]
        if not values:
            return 0.0
        return sum(values) / len(values)

    @staticmethod
    def last_reviewed(items: Iterable[ReviewItem], count: int = 10) -> list[ReviewItem]:
        """Most recently reviewed items, newest first."""
        reviewed = [item for item in items if item.last_reviewed_at is not None]
        reviewed.sort(key=lambda item: item.last_reviewed_at, reverse=True)
        return reviewed[:count]
