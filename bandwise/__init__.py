"""
bandwise - adaptive study scheduling for banded clinical training.

Subpackages:
- core: entity records, decision cache, time helpers
- study: spaced repetition, streaks, XP and badges
- adaptive: band progression and domain lifecycle
- planning: daily mix, rotation deadlines, recommendations
- cli: typer command line

LearningEngine (bandwise.engine) wires these into one session-to-plan flow.
"""

__version__ = "1.0.0"
