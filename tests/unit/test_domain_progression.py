"""
Unit tests for domain lifecycle and gate refresh.
"""
from bandwise.adaptive.domain_progression import DomainProgression
from bandwise.core.models import DomainState, DomainStatus, GateProgress


class TestRecordCompletions:
    def test_counts_completed_items(self, domains):
        updated = DomainProgression().record_completions(domains, ["trauma", "trauma", "cardiology"])
        by_name = {s.domain: s for s in updated}
        assert by_name["trauma"].items_completed == 12
        assert by_name["cardiology"].items_completed == 5

    def test_locked_domains_untouched(self, domains):
        updated = DomainProgression().record_completions(domains, ["neurology"])
        assert updated[3].items_completed == 0

    def test_capped_at_total(self):
        status = DomainStatus("trauma", total_items=3, items_completed=2, status=DomainState.GATED)
        assert DomainProgression().record_completions([status], ["trauma"] * 5)[0].items_completed == 3

    def test_active_domain_becomes_gated(self):
        status = DomainStatus("trauma", total_items=10, items_completed=6, status=DomainState.ACTIVE)
        updated = DomainProgression().record_completions([status], ["trauma"])
        assert updated[0].status is DomainState.GATED

    def test_zero_total_stays_active(self):
        status = DomainStatus("empty", total_items=0, status=DomainState.ACTIVE)
        assert DomainProgression().record_completions([status], [])[0].status is DomainState.ACTIVE
        assert status.completion_rate == 0.0


class TestSrsGate:
    def test_stable_when_recent_cards_strong(self, make_item):
        items = [make_item(f"c{i}", stability=0.8, days_ago=i + 1) for i in range(10)]
        gates = DomainProgression().refresh_srs_gate(GateProgress(), items)
        assert gates.srs_cards_stable is True

    def test_not_stable_with_too_few_cards(self, make_item):
        items = [make_item(f"c{i}", stability=0.95) for i in range(4)]
        assert DomainProgression().refresh_srs_gate(GateProgress(), items).srs_cards_stable is False

    def test_stability_can_be_lost(self, make_item):
        items = [make_item(f"c{i}", stability=0.3, days_ago=i + 1) for i in range(10)]
        gates = GateProgress(srs_cards_stable=True)
        assert DomainProgression().refresh_srs_gate(gates, items).srs_cards_stable is False


class TestCompleteDomain:
    def test_completes_and_unlocks_next(self, domains, all_gates):
        updated = DomainProgression().complete_domain(domains, "orthopedics", all_gates)
        by_name = {s.domain: s.status for s in updated}
        assert by_name["orthopedics"] is DomainState.COMPLETED
        assert by_name["neurology"] is DomainState.ACTIVE

    def test_requires_all_gates(self, domains):
        updated = DomainProgression().complete_domain(domains, "orthopedics", GateProgress())
        assert updated == domains

    def test_only_gated_domains_complete(self, domains, all_gates):
        assert DomainProgression().complete_domain(domains, "trauma", all_gates) == domains

    def test_unlock_domain(self, domains):
        updated = DomainProgression.unlock_domain(domains, "neurology")
        assert updated[3].status is DomainState.ACTIVE
