"""
Planning Module.

Turns learner state into the day's plan:
- DailyMixPlanner: new / interleaved / review sections under a time budget
- RotationDeadlineTracker: placement progress and required pace
- PriorityRecommendationEngine: ranked next actions
"""

from bandwise.planning.daily_mix import DailyMixPlanner, MixConfig
from bandwise.planning.recommendations import (
    PriorityRecommendationEngine,
    RecommendationConfig,
    RecommendationContext,
)
from bandwise.planning.rotation_tracker import RotationConfig, RotationDeadlineTracker

__all__ = [
    "DailyMixPlanner",
    "MixConfig",
    "PriorityRecommendationEngine",
    "RecommendationConfig",
    "RecommendationContext",
    "RotationConfig",
    "RotationDeadlineTracker",
]
