"""
Band Progression State Machine.

Tracks a learner's difficulty band (A -> E) and decides, once per
completed session, whether to promote, demote or hold:

- Promote: all four gates passed AND rolling correct-rate >= promote
  threshold over at least ``min_sample_size`` graded items
- Demote: rolling correct-rate < demote threshold over the same floor
- At most one step per evaluation and at most one transition per day

Every transition appends to the band history and resets the streak at the
band. A demotion, or a decisive failure at the floor band, flags the next
daily mix as a recovery day.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Optional, Sequence

from loguru import logger

from bandwise.core.models import (
    Band,
    BandHistoryEntry,
    BandStatus,
    GateProgress,
    RecentPerformance,
)


# =============================================================================
# Band catalogue
# =============================================================================


@dataclass(frozen=True)
class BandDefinition:
    band: Band
    label: str
    description: str
    decision_points: int
    hints: str
    support_level: str


BAND_DEFINITIONS: dict[Band, BandDefinition] = {
    Band.A: BandDefinition(Band.A, "Foundational", "Guided cases with clear cues, one decision point", 1, "many", "high"),
    Band.B: BandDefinition(Band.B, "Developing", "One or two decision points, obvious pitfalls", 2, "some", "medium"),
    Band.C: BandDefinition(Band.C, "Intermediate", "Two or three decision points, subtle pitfalls", 3, "few", "medium"),
    Band.D: BandDefinition(Band.D, "Advanced", "Several decision points under time pressure", 4, "rare", "low"),
    Band.E: BandDefinition(Band.E, "Expert", "Complex cases with complications and no hints", 5, "none", "minimal"),
}

# Training level -> starting band
STARTING_BANDS: dict[str, Band] = {
    "student": Band.A,
    "intern": Band.B,
    "resident_1": Band.C,
    "resident_2": Band.C,
    "resident_3": Band.D,
    "resident_4": Band.D,
    "resident_5": Band.E,
    "specialist": Band.E,
}


def starting_band(level: str) -> Band:
    """Initial band for a training level (B when unknown)."""
    return STARTING_BANDS.get(level.strip().lower(), Band.B)


def describe(band: Band) -> BandDefinition:
    return BAND_DEFINITIONS[band]


# =============================================================================
# State machine
# =============================================================================


class BandDecision(str, Enum):
    PROMOTE = "promote"
    DEMOTE = "demote"
    HOLD = "hold"


@dataclass
class BandConfig:
    """Thresholds for band transitions."""
    performance_window: int = 20
    min_sample_size: int = 10
    promote_threshold: float = 0.8
    demote_threshold: float = 0.5


@dataclass
class BandEvaluation:
    status: BandStatus
    decision: BandDecision
    previous_band: Band
    is_recovery_day: bool = False
    reasons: list[str] = field(default_factory=list)

    @property
    def transitioned(self) -> bool:
        return self.decision is not BandDecision.HOLD


class BandProgressionStateMachine:
    def __init__(self, config: Optional[BandConfig] = None):
        self.config = config or BandConfig()

    def record_outcomes(self, status: BandStatus, outcomes: Sequence[bool]) -> BandStatus:
        """
        Fold graded outcomes into the rolling performance window.

        Args:
            status: Current band status
            outcomes: Correctness of newly graded items, oldest first

        Returns:
            Status with updated recent_performance
        """
        if not outcomes:
            return status

        window = self.config.performance_window
        count = len(outcomes)

        if count >= window:
            latest = list(outcomes)[-window:]
            performance = RecentPerformance(
                correct_rate=sum(1 for o in latest if o) / window,
                sample_size=window,
            )
        else:
            prior = status.recent_performance
            kept = min(prior.sample_size, window - count)
            correct = prior.correct_rate * kept + sum(1 for o in outcomes if o)
            sample = kept + count
            performance = RecentPerformance(correct_rate=correct / sample, sample_size=sample)

        return replace(status, recent_performance=performance)

    def can_promote(self, status: BandStatus) -> bool:
        perf = status.recent_performance
        return (
            not status.current_band.is_highest
            and status.gate_progress.all_passed
            and perf.sample_size >= self.config.min_sample_size
            and perf.correct_rate >= self.config.promote_threshold
        )

    def is_failing(self, status: BandStatus) -> bool:
        perf = status.recent_performance
        return (
            perf.sample_size >= self.config.min_sample_size
            and perf.correct_rate < self.config.demote_threshold
        )

    def evaluate(self, status: BandStatus, today: date) -> BandEvaluation:
        """
        Decide promotion, demotion or hold for a completed session.

        Args:
            status: Band status with up-to-date performance and gates
            today: Session date

        Returns:
            BandEvaluation with the new status
        """
        band = status.current_band
        perf = status.recent_performance
        failing = self.is_failing(status)
        reasons: list[str] = []

        if status.last_transition_on == today:
            reasons.append("band already changed today")
            decision = BandDecision.HOLD
        elif self.can_promote(status):
            reasons.append(
                f"correct rate {perf.correct_rate:.0%} over {perf.sample_size} items with all gates passed"
            )
            decision = BandDecision.PROMOTE
        elif failing and not band.is_lowest:
            reasons.append(f"correct rate {perf.correct_rate:.0%} below {self.config.demote_threshold:.0%}")
            decision = BandDecision.DEMOTE
        else:
            missing = status.gate_progress.missing()
            if missing:
                reasons.append(f"gates pending: {', '.join(missing)}")
            if perf.sample_size < self.config.min_sample_size:
                reasons.append(f"only {perf.sample_size}/{self.config.min_sample_size} graded items")
            decision = BandDecision.HOLD

        if decision is BandDecision.HOLD:
            new_status = self._hold(status, today)
        else:
            new_status = self._transition(status, decision, today, reasons[0])

        is_recovery = decision is BandDecision.DEMOTE or failing
        new_status = replace(new_status, recovery_pending=is_recovery, last_evaluated_on=today)

        if decision is not BandDecision.HOLD:
            logger.info(f"Band {decision.value}: {band.value} -> {new_status.current_band.value} ({reasons[0]})")
        elif is_recovery:
            logger.info(f"Recovery day flagged at band {band.value}")

        return BandEvaluation(
            status=new_status,
            decision=decision,
            previous_band=band,
            is_recovery_day=is_recovery,
            reasons=reasons,
        )

    def _hold(self, status: BandStatus, today: date) -> BandStatus:
        if status.last_evaluated_on == today:
            return status
        return replace(status, streak_at_band=status.streak_at_band + 1)

    def _transition(
        self,
        status: BandStatus,
        decision: BandDecision,
        today: date,
        reason: str,
    ) -> BandStatus:
        if decision is BandDecision.PROMOTE:
            new_band = status.current_band.harder()
            gates = GateProgress()
        else:
            new_band = status.current_band.easier()
            gates = status.gate_progress

        history = [
            *status.band_history,
            BandHistoryEntry(band=new_band, date=today, reason=f"{decision.value}: {reason}"),
        ]
        return replace(
            status,
            current_band=new_band,
            streak_at_band=0,
            recent_performance=RecentPerformance(),
            gate_progress=gates,
            band_history=history,
            last_transition_on=today,
        )
