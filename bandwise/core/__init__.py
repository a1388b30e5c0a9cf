"""
Core Module - Shared records and utilities.

Components:
- models: Entity records and enums (ReviewItem, BandStatus, DailyMix, ...)
- cache: Injected decision cache with pluggable backends
- timeutils: Calendar-day helpers
- exceptions: Caller-facing errors
"""

from bandwise.core.cache import CacheBackend, DecisionCache, MemoryCacheBackend
from bandwise.core.exceptions import BandwiseError, SnapshotError
from bandwise.core.models import (
    Band,
    BandStatus,
    DailyMix,
    DomainState,
    DomainStatus,
    GamificationState,
    GateProgress,
    LearnerProfile,
    LearnerSnapshot,
    Priority,
    Recommendation,
    ReviewItem,
)

__all__ = [
    "Band",
    "BandStatus",
    "BandwiseError",
    "CacheBackend",
    "DailyMix",
    "DecisionCache",
    "DomainState",
    "DomainStatus",
    "GamificationState",
    "GateProgress",
    "LearnerProfile",
    "LearnerSnapshot",
    "MemoryCacheBackend",
    "Priority",
    "Recommendation",
    "ReviewItem",
    "SnapshotError",
]
