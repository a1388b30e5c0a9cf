"""
Adaptive Module - band and domain progression.
"""

from bandwise.adaptive.band_progression import (
    BandConfig,
    BandDecision,
    BandEvaluation,
    BandProgressionStateMachine,
)
from bandwise.adaptive.domain_progression import DomainProgression

__all__ = [
    "BandConfig",
    "BandDecision",
    "BandEvaluation",
    "BandProgressionStateMachine",
    "DomainProgression",
]
