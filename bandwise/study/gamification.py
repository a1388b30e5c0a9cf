"""
XP, levels and badges.

XP per answer scales with the band multiplier; hints reduce the award and
fast answers earn a speed bonus. Levels follow a quadratic curve capped at
MAX_LEVEL.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from loguru import logger

from bandwise.core.models import BAND_MULTIPLIERS, Band, GamificationState


MAX_LEVEL = 50


@dataclass
class XPConfig:
    base_correct_xp: int = 10
    hint_penalty: float = 0.15
    min_hint_factor: float = 0.5
    fast_answer_seconds: float = 30.0
    fast_bonus: float = 1.3
    slow_answer_seconds: float = 180.0
    slow_factor: float = 0.9
    max_incorrect_xp: int = 2


def xp_for_level(level: int) -> int:
    """Total XP needed to reach ``level``."""
    if level <= 1:
        return 0
    if level == 2:
        return 100
    return 50 * (level - 1) ** 2


def level_for_xp(xp: int) -> int:
    level = 1
    while level < MAX_LEVEL and xp >= xp_for_level(level + 1):
        level += 1
    return level


def xp_to_next_level(xp: int) -> int:
    level = level_for_xp(xp)
    if level >= MAX_LEVEL:
        return 0
    return xp_for_level(level + 1) - xp


def xp_for_answer(
    correct: bool,
    band: Band,
    hints_used: int = 0,
    time_spent_seconds: float = 0.0,
    hint_penalty_multiplier: float = 1.0,
    config: Optional[XPConfig] = None,
    multipliers: Optional[dict[str, float]] = None,
) -> int:
    """
    XP awarded for one answer.

    Args:
        correct: Whether the answer was correct
        band: Band the item was served at
        hints_used: Hints requested
        time_spent_seconds: Answer time
        hint_penalty_multiplier: Softens the hint penalty (recovery days)
        config: XP constants
        multipliers: Per-band multipliers keyed by band letter

    Returns:
        Whole XP points
    """
    cfg = config or XPConfig()
    multiplier = (multipliers or BAND_MULTIPLIERS).get(band.value, 1.0)

    if not correct:
        return min(cfg.max_incorrect_xp, round(multiplier))

    penalty = cfg.hint_penalty * max(0.0, hint_penalty_multiplier)
    hint_factor = max(cfg.min_hint_factor, 1.0 - penalty * max(0, hints_used))
    xp = cfg.base_correct_xp * multiplier * hint_factor

    if time_spent_seconds <= cfg.fast_answer_seconds:
        xp *= cfg.fast_bonus
    elif time_spent_seconds > cfg.slow_answer_seconds:
        xp *= cfg.slow_factor

    return round(xp)


# Badge id -> predicate over the state
BADGES = {
    "week_warrior": lambda s: s.streak >= 7,
    "level_10": lambda s: s.level >= 10,
    "level_25": lambda s: s.level >= 25,
    "max_level": lambda s: s.level >= MAX_LEVEL,
}


def award_xp(state: GamificationState, xp: int) -> GamificationState:
    """Add XP, recompute level and grant any newly earned badges."""
    total = max(0, state.xp + xp)
    updated = replace(state, xp=total, level=level_for_xp(total))

    if updated.level > state.level:
        logger.info(f"Level up: {state.level} -> {updated.level}")

    return grant_badges(updated)


def grant_badges(state: GamificationState) -> GamificationState:
    earned = [
        badge for badge, check in BADGES.items()
        if check(state) and badge not in state.badges
    ]
    if not earned:
        return state

    logger.info(f"Badges earned: {', '.join(earned)}")
    return replace(state, badges=[*state.badges, *earned])
