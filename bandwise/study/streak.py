"""
Daily engagement streak with single-miss tolerance.

Rules (calendar days, not 24h windows):
- same day: unchanged, so repeated calls are idempotent
- one day later: +1
- two days later: a freeze token preserves max(1, previous), at most once
  per rolling week
- anything longer: reset to 1
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from loguru import logger

from bandwise.core.models import GamificationState
from bandwise.core.timeutils import days_between


class StreakEvent(str, Enum):
    STARTED = "started"
    UNCHANGED = "unchanged"
    EXTENDED = "extended"
    FROZEN = "frozen"
    RESET = "reset"


@dataclass
class StreakConfig:
    freeze_gap_days: int = 2
    freeze_window_days: int = 7
    milestone_days: int = 7  # a freeze token is earned at each multiple
    max_freeze_tokens: int = 2


@dataclass
class StreakUpdate:
    state: GamificationState
    event: StreakEvent

    @property
    def streak(self) -> int:
        return self.state.streak


class StreakTracker:
    def __init__(self, config: Optional[StreakConfig] = None):
        self.config = config or StreakConfig()

    def freeze_available(self, state: GamificationState, now: datetime) -> bool:
        """A token is banked and none was spent in the rolling window."""
        if state.freeze_tokens <= 0:
            return False
        if state.last_freeze_on is None:
            return True
        return days_between(state.last_freeze_on, now) >= self.config.freeze_window_days

    def next_streak(
        self,
        last_activity_at: Optional[datetime],
        now: datetime,
        previous: int,
        freeze_available: bool = False,
    ) -> tuple[int, StreakEvent]:
        """
        Compute the streak for activity at ``now``.

        Args:
            last_activity_at: Previous activity time (None for first activity)
            now: Current activity time
            previous: Streak before this activity
            freeze_available: Whether a two-day gap may be bridged

        Returns:
            (new streak, event)
        """
        if last_activity_at is None:
            return 1, StreakEvent.STARTED

        gap = days_between(last_activity_at, now)
        if gap <= 0:
            return previous, StreakEvent.UNCHANGED
        if gap == 1:
            return previous + 1, StreakEvent.EXTENDED
        if gap == self.config.freeze_gap_days and freeze_available:
            return max(1, previous), StreakEvent.FROZEN
        return 1, StreakEvent.RESET

    def update_streak(self, state: GamificationState, now: datetime) -> StreakUpdate:
        """Apply activity at ``now`` to the learner's gamification state."""
        streak, event = self.next_streak(
            state.last_activity_at,
            now,
            state.streak,
            freeze_available=self.freeze_available(state, now),
        )

        if event is StreakEvent.UNCHANGED:
            return StreakUpdate(state=state, event=event)

        tokens = state.freeze_tokens
        last_freeze_on = state.last_freeze_on
        if event is StreakEvent.FROZEN:
            tokens -= 1
            last_freeze_on = now.date()
            logger.info(f"Streak freeze used, streak held at {streak} ({tokens} token(s) left)")
        elif event is StreakEvent.EXTENDED and streak % self.config.milestone_days == 0:
            tokens = min(self.config.max_freeze_tokens, tokens + 1)

        if event is StreakEvent.RESET:
            logger.debug(f"Streak reset (was {state.streak})")

        updated = replace(
            state,
            streak=streak,
            longest_streak=max(state.longest_streak, streak),
            freeze_tokens=tokens,
            last_freeze_on=last_freeze_on,
            last_activity_at=now,
        )
        return StreakUpdate(state=updated, event=event)
