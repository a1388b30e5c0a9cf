"""
Daily Mix Planner.

Composes one day's session from three sections under a time budget:
- New content (60%): weakest open domain first
- Interleaving (20%): a different domain, favouring ones not practiced
  recently so practice stays spaced and varied
- Review (20%): due spaced repetition items, most at-risk first, capped by
  the section's time share and by an item budget that grows with the band

Per-item time estimates scale with the band. Recovery days (after a
demotion or a decisively failed evaluation) lower the difficulty and hint
penalty multipliers. Missing content or due items yield empty sections.
"""
from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional, Sequence

from loguru import logger

from bandwise.core.models import (
    BAND_MULTIPLIERS,
    Band,
    DailyMix,
    DomainState,
    DomainStatus,
    LearnerProfile,
    MixSection,
    ReviewItem,
    SectionKind,
)
from bandwise.study.spaced_repetition import SpacedRepetitionScheduler


@dataclass
class MixConfig:
    """Configuration for daily mix composition."""
    new_ratio: float = 0.6
    interleave_ratio: float = 0.2
    review_ratio: float = 0.2
    minutes_per_item: float = 2.0
    review_minutes_per_item: float = 1.0
    band_multipliers: dict[str, float] = field(default_factory=lambda: dict(BAND_MULTIPLIERS))
    review_base_cap: int = 10
    review_cap_per_band: int = 5
    recovery_difficulty_factor: float = 0.8
    recovery_hint_factor: float = 0.5
    weak_threshold: float = 0.7
    default_domain: str = "general"


class DailyMixPlanner:
    """
    Builds the DailyMix for a learner.

    Args:
        config: MixConfig or None for defaults
        scheduler: Scheduler used for forgetting-probability ordering
        rng: Random source for interleaving choice; when None the
            least-recently practiced domain is picked deterministically
    """

    def __init__(
        self,
        config: Optional[MixConfig] = None,
        scheduler: Optional[SpacedRepetitionScheduler] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or MixConfig()
        self.scheduler = scheduler or SpacedRepetitionScheduler()
        self.rng = rng

    def band_multiplier(self, band: Band) -> float:
        return self.config.band_multipliers.get(band.value, 1.0)

    def review_cap(self, band: Band) -> int:
        return self.config.review_base_cap + self.config.review_cap_per_band * (band.ordinal - 1)

    # =========================================================================
    # Domain selection
    # =========================================================================

    def select_new_domain(
        self,
        domain_statuses: Sequence[DomainStatus],
        focus_domains: Sequence[str],
    ) -> str:
        """Weakest open domain, then first focus domain, then the default."""
        open_domains = [s for s in domain_statuses if s.is_open]
        if open_domains:
            weakest = min(open_domains, key=lambda s: (s.completion_rate, s.domain))
            return weakest.domain

        if focus_domains:
            logger.debug("No open domains, falling back to focus domains")
            return focus_domains[0]

        logger.debug(f"No open or focus domains, using default domain {self.config.default_domain!r}")
        return self.config.default_domain

    def interleave_weights(
        self,
        candidates: Sequence[str],
        recent_domains: Sequence[str],
    ) -> list[float]:
        """
        Anti-recency weights: never-practiced domains weigh most, the most
        recently practiced domain weighs least.
        """
        recent = list(dict.fromkeys(recent_domains))
        unseen_weight = float(len(recent) + 1)
        return [
            float(recent.index(domain) + 1) if domain in recent else unseen_weight
            for domain in candidates
        ]

    def select_interleave_domain(
        self,
        new_domain: str,
        domain_statuses: Sequence[DomainStatus],
        focus_domains: Sequence[str],
        recent_domains: Sequence[str],
    ) -> Optional[str]:
        names = {s.domain for s in domain_statuses if s.status is not DomainState.LOCKED}
        names.update(focus_domains)
        names.discard(new_domain)
        if not names:
            return None

        candidates = sorted(names)
        weights = self.interleave_weights(candidates, recent_domains)

        if self.rng is None:
            best = max(weights)
            return candidates[weights.index(best)]
        return self.rng.choices(candidates, weights=weights, k=1)[0]

    # =========================================================================
    # Generation
    # =========================================================================

    def generate(
        self,
        profile: LearnerProfile,
        review_items: Sequence[ReviewItem],
        domain_statuses: Sequence[DomainStatus],
        target_band: Optional[Band] = None,
        now: Optional[datetime] = None,
        available_content: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> DailyMix:
        """
        Compose the day's mix.

        Args:
            profile: Learner profile (band status, focus and recent domains)
            review_items: Full review-item collection
            domain_statuses: Per-domain completion state
            target_band: Band to plan at (defaults to the learner's band)
            now: Planning time
            available_content: Unseen content ids per domain

        Returns:
            DailyMix
        """
        now = now or datetime.now()
        band = target_band or profile.band_status.current_band
        content = available_content or {}
        cfg = self.config

        is_recovery = profile.band_status.recovery_pending
        multiplier = self.band_multiplier(band)
        difficulty = multiplier * (cfg.recovery_difficulty_factor if is_recovery else 1.0)
        hint_penalty = cfg.recovery_hint_factor if is_recovery else 1.0

        item_minutes = cfg.minutes_per_item * multiplier
        budget = max(0, profile.daily_minutes)

        new_domain = self.select_new_domain(domain_statuses, profile.focus_domains)
        new_section = self._content_section(
            SectionKind.NEW, new_domain, content, budget * cfg.new_ratio, item_minutes
        )

        interleave_domain = self.select_interleave_domain(
            new_domain, domain_statuses, profile.focus_domains, profile.recent_domains
        )
        interleave_section = self._content_section(
            SectionKind.INTERLEAVING, interleave_domain, content, budget * cfg.interleave_ratio, item_minutes
        )

        review_section = self.review_section(review_items, band, budget, now)

        weak = sorted(
            (s for s in domain_statuses if s.is_open and s.completion_rate < cfg.weak_threshold),
            key=lambda s: (s.completion_rate, s.domain),
        )

        mix = DailyMix(
            target_band=band,
            new_content=new_section,
            interleaving=interleave_section,
            review=review_section,
            is_recovery_day=is_recovery,
            difficulty_multiplier=difficulty,
            hint_penalty_multiplier=hint_penalty,
            weak_domains=[s.domain for s in weak],
            leech_items=self.leech_items(review_items),
            generated_on=now.date(),
        )

        logger.info(
            f"Built daily mix at band {band.value}: {len(new_section.items)} new ({new_domain}), "
            f"{len(interleave_section.items)} interleaved ({interleave_domain}), "
            f"{len(review_section.items)} review, ~{mix.total_estimated_time:.0f} min"
            + (" [recovery]" if is_recovery else "")
        )
        return mix

    def review_section(
        self,
        review_items: Sequence[ReviewItem],
        band: Band,
        daily_minutes: float,
        now: datetime,
    ) -> MixSection:
        """
        Due non-leech items, most at-risk first.

        Capped by both the band's item budget and the review share of
        ``daily_minutes``.
        """
        review_minutes = self.config.review_minutes_per_item * self.band_multiplier(band)
        limit = min(
            self.review_cap(band),
            self._items_in_budget(max(0, daily_minutes) * self.config.review_ratio, review_minutes),
        )
        due = [item for item in self.scheduler.due_items(review_items, now) if not item.is_leech]
        ranked = self.scheduler.prioritize(due, now)[:limit]
        return MixSection(
            kind=SectionKind.REVIEW,
            domain=None,
            items=[item.id for item in ranked],
            estimated_minutes=len(ranked) * review_minutes,
        )

    def leech_items(self, review_items: Sequence[ReviewItem]) -> list[str]:
        return [item.id for item in self.scheduler.detect_leeches(review_items)]

    def _content_section(
        self,
        kind: SectionKind,
        domain: Optional[str],
        content: Mapping[str, Sequence[str]],
        budget_minutes: float,
        item_minutes: float,
    ) -> MixSection:
        if domain is None or item_minutes <= 0:
            return MixSection(kind=kind, domain=domain)

        count = self._items_in_budget(budget_minutes, item_minutes)
        items = list(content.get(domain, []))[:count]
        return MixSection(
            kind=kind,
            domain=domain,
            items=items,
            estimated_minutes=len(items) * item_minutes,
        )

    @staticmethod
    def _items_in_budget(budget_minutes: float, item_minutes: float) -> int:
        if item_minutes <= 0:
            return 0
        # tolerance for ratios like 0.2 that are inexact in binary
        return max(0, int(math.floor(budget_minutes / item_minutes + 1e-9)))
