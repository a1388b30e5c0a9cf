"""
Unit tests for the band progression state machine.
"""
from datetime import date, timedelta
from itertools import product

import pytest

from bandwise.adaptive.band_progression import (
    BandDecision,
    BandProgressionStateMachine,
    describe,
    starting_band,
)
from bandwise.core.models import (
    Band,
    BandHistoryEntry,
    BandStatus,
    GateProgress,
    RecentPerformance,
)

TODAY = date(2025, 3, 3)


@pytest.fixture
def machine():
    return BandProgressionStateMachine()


def status_at(band, rate, sample, gates=None, **kwargs):
    return BandStatus(
        current_band=band,
        recent_performance=RecentPerformance(correct_rate=rate, sample_size=sample),
        gate_progress=gates or GateProgress(),
        **kwargs,
    )


class TestBandOrdering:
    def test_ordinals(self):
        assert [b.ordinal for b in Band] == [1, 2, 3, 4, 5]

    def test_easier_and_harder_saturate(self):
        assert Band.A.easier() is Band.A
        assert Band.E.harder() is Band.E
        assert Band.C.harder() is Band.D
        assert Band.C.easier() is Band.B

    def test_starting_band(self):
        assert starting_band("student") is Band.A
        assert starting_band("Specialist") is Band.E
        assert starting_band("unknown") is Band.B

    def test_describe(self):
        assert describe(Band.A).decision_points == 1


class TestPromotion:
    def test_promotes_with_gates_and_performance(self, machine, all_gates):
        status = status_at(Band.B, 0.85, 12, all_gates, streak_at_band=4)

        result = machine.evaluate(status, TODAY)

        assert result.decision is BandDecision.PROMOTE
        assert result.status.current_band is Band.C
        assert result.status.streak_at_band == 0
        assert len(result.status.band_history) == 1
        assert result.status.band_history[-1].band is Band.C
        assert result.status.band_history[-1].date == TODAY
        assert result.is_recovery_day is False

    def test_promotion_resets_gates_and_window(self, machine, all_gates):
        result = machine.evaluate(status_at(Band.B, 0.9, 15, all_gates), TODAY)
        assert result.status.gate_progress == GateProgress()
        assert result.status.recent_performance.sample_size == 0

    @pytest.mark.parametrize("flags", [f for f in product([False, True], repeat=4) if not all(f)])
    def test_any_missing_gate_blocks_promotion(self, machine, flags):
        gates = GateProgress(*flags)
        result = machine.evaluate(status_at(Band.B, 1.0, 20, gates), TODAY)
        assert result.decision is BandDecision.HOLD
        assert result.status.current_band is Band.B

    def test_sample_floor_blocks_promotion(self, machine, all_gates):
        result = machine.evaluate(status_at(Band.B, 1.0, 9, all_gates), TODAY)
        assert result.decision is BandDecision.HOLD
        assert any("graded items" in r for r in result.reasons)

    def test_performance_threshold_blocks_promotion(self, machine, all_gates):
        assert machine.evaluate(status_at(Band.B, 0.79, 20, all_gates), TODAY).decision is BandDecision.HOLD

    def test_terminal_band_never_promotes(self, machine, all_gates):
        result = machine.evaluate(status_at(Band.E, 1.0, 20, all_gates), TODAY)
        assert result.decision is BandDecision.HOLD
        assert result.status.current_band is Band.E

    def test_history_is_appended(self, machine, all_gates):
        earlier = BandHistoryEntry(band=Band.B, date=TODAY - timedelta(days=30))
        status = status_at(Band.B, 0.9, 12, all_gates, band_history=[earlier])
        result = machine.evaluate(status, TODAY)
        assert result.status.band_history[0] == earlier
        assert len(result.status.band_history) == 2
        assert len(status.band_history) == 1


class TestDemotion:
    def test_demotes_on_poor_performance(self, machine):
        result = machine.evaluate(status_at(Band.C, 0.4, 12, streak_at_band=3), TODAY)

        assert result.decision is BandDecision.DEMOTE
        assert result.status.current_band is Band.B
        assert result.status.streak_at_band == 0
        assert result.is_recovery_day is True
        assert result.status.recovery_pending is True

    def test_demotion_needs_sample_floor(self, machine):
        assert machine.evaluate(status_at(Band.C, 0.0, 5), TODAY).decision is BandDecision.HOLD

    def test_floor_band_flags_recovery_without_demotion(self, machine):
        result = machine.evaluate(status_at(Band.A, 0.2, 15), TODAY)
        assert result.decision is BandDecision.HOLD
        assert result.status.current_band is Band.A
        assert result.is_recovery_day is True

    def test_recovery_cleared_when_performance_recovers(self, machine):
        status = status_at(Band.B, 0.7, 12, recovery_pending=True)
        assert machine.evaluate(status, TODAY).status.recovery_pending is False


class TestDailyLimits:
    def test_one_transition_per_day(self, machine, all_gates):
        status = status_at(Band.B, 0.95, 20, all_gates, last_transition_on=TODAY)
        result = machine.evaluate(status, TODAY)
        assert result.decision is BandDecision.HOLD
        assert result.status.current_band is Band.B

    def test_single_step_per_evaluation(self, machine, all_gates):
        result = machine.evaluate(status_at(Band.A, 1.0, 20, all_gates), TODAY)
        assert result.status.current_band is Band.B

    def test_hold_increments_streak_once_per_day(self, machine):
        status = status_at(Band.C, 0.7, 12, streak_at_band=2)
        first = machine.evaluate(status, TODAY).status
        second = machine.evaluate(first, TODAY).status
        next_day = machine.evaluate(second, TODAY + timedelta(days=1)).status

        assert first.streak_at_band == 3
        assert second.streak_at_band == 3
        assert next_day.streak_at_band == 4


class TestRecordOutcomes:
    def test_first_outcomes(self, machine):
        status = machine.record_outcomes(BandStatus(), [True, True, False, True])
        assert status.recent_performance.sample_size == 4
        assert status.recent_performance.correct_rate == pytest.approx(0.75)

    def test_blends_with_prior_window(self, machine):
        status = status_at(Band.B, 0.5, 10)
        updated = machine.record_outcomes(status, [True] * 10)
        assert updated.recent_performance.sample_size == 20
        assert updated.recent_performance.correct_rate == pytest.approx(0.75)

    def test_window_is_bounded(self, machine):
        status = status_at(Band.B, 0.0, 20)
        updated = machine.record_outcomes(status, [True] * 5)
        assert updated.recent_performance.sample_size == 20
        assert updated.recent_performance.correct_rate == pytest.approx(0.25)

    def test_large_batch_uses_latest(self, machine):
        outcomes = [False] * 10 + [True] * 20
        updated = machine.record_outcomes(BandStatus(), outcomes)
        assert updated.recent_performance.correct_rate == 1.0
        assert updated.recent_performance.sample_size == 20

    def test_no_outcomes_is_noop(self, machine):
        status = status_at(Band.B, 0.5, 10)
        assert machine.record_outcomes(status, []) is status
