"""
Domain lifecycle: locked -> active -> gated -> completed.

- Answering new content advances a domain's completion count
- An active domain becomes gated once enough of it is completed
- A gated domain completes when every gate has passed, which unlocks the
  next locked domain in order
- The SRS-stability gate is refreshed from the learner's review items
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Sequence

from loguru import logger

from bandwise.core.models import DomainState, DomainStatus, GateProgress, ReviewItem
from bandwise.study.spaced_repetition import SpacedRepetitionScheduler


@dataclass
class DomainProgressionConfig:
    gate_completion_rate: float = 0.7
    stable_threshold: float = 0.7
    stable_sample: int = 10


class DomainProgression:
    def __init__(self, config: Optional[DomainProgressionConfig] = None):
        self.config = config or DomainProgressionConfig()

    def record_completions(
        self,
        statuses: Sequence[DomainStatus],
        completed_domains: Iterable[str],
    ) -> list[DomainStatus]:
        """
        Count newly completed items per domain.

        Args:
            statuses: Current domain statuses
            completed_domains: Domain of each newly completed item

        Returns:
            Updated statuses in the same order
        """
        counts = Counter(completed_domains)
        updated = []
        for status in statuses:
            added = counts.get(status.domain, 0)
            if added and status.is_open:
                completed = min(status.total_items, status.items_completed + added)
                status = replace(status, items_completed=completed)
            updated.append(self._maybe_gate(status))
        return updated

    def _maybe_gate(self, status: DomainStatus) -> DomainStatus:
        if (
            status.status is DomainState.ACTIVE
            and status.total_items > 0
            and status.completion_rate >= self.config.gate_completion_rate
        ):
            logger.info(f"Domain {status.domain} reached its gate ({status.completion_rate:.0%} complete)")
            return replace(status, status=DomainState.GATED)
        return status

    def refresh_srs_gate(self, gates: GateProgress, review_items: Iterable[ReviewItem]) -> GateProgress:
        """Recompute the srs_cards_stable gate from recently reviewed items."""
        recent = SpacedRepetitionScheduler.last_reviewed(review_items, self.config.stable_sample)
        stable = (
            len(recent) >= self.config.stable_sample
            and SpacedRepetitionScheduler.average_stability(recent) >= self.config.stable_threshold
        )
        if stable == gates.srs_cards_stable:
            return gates
        return replace(gates, srs_cards_stable=stable)

    def complete_domain(
        self,
        statuses: Sequence[DomainStatus],
        domain: str,
        gates: GateProgress,
    ) -> list[DomainStatus]:
        """
        Complete a gated domain and unlock the next locked one.

        Nothing changes unless the domain is gated and all gates pass.
        """
        target = next((s for s in statuses if s.domain == domain), None)
        if target is None or target.status is not DomainState.GATED or not gates.all_passed:
            return list(statuses)

        updated = [
            replace(s, status=DomainState.COMPLETED) if s.domain == domain else s
            for s in statuses
        ]
        for index, status in enumerate(updated):
            if status.status is DomainState.LOCKED:
                updated[index] = replace(status, status=DomainState.ACTIVE)
                logger.info(f"Domain {domain} completed, unlocked {status.domain}")
                break
        return updated

    @staticmethod
    def unlock_domain(statuses: Sequence[DomainStatus], domain: str) -> list[DomainStatus]:
        return [
            replace(s, status=DomainState.ACTIVE)
            if s.domain == domain and s.status is DomainState.LOCKED
            else s
            for s in statuses
        ]
