"""
Study Module.

Provides:
- Spaced repetition grading and prioritization
- Daily streak tracking with freeze tokens
- XP, levels and badges
"""

from bandwise.study.gamification import award_xp, level_for_xp, xp_for_answer
from bandwise.study.spaced_repetition import SpacedRepetitionScheduler, SRSConfig
from bandwise.study.streak import StreakTracker, StreakConfig

__all__ = [
    "SpacedRepetitionScheduler",
    "SRSConfig",
    "StreakTracker",
    "StreakConfig",
    "award_xp",
    "level_for_xp",
    "xp_for_answer",
]
