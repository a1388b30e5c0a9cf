"""
Configuration settings for the bandwise scheduler.

Uses Pydantic Settings for environment variable management with .env file
support. Every variable is prefixed with ``BANDWISE_``, e.g.
``BANDWISE_BAND_PROMOTE_THRESHOLD=0.85``.

Components take their own config dataclass; the ``get_*_config`` helpers
build those from the loaded settings.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from bandwise.adaptive.band_progression import BandConfig
from bandwise.adaptive.domain_progression import DomainProgressionConfig
from bandwise.core.models import BAND_MULTIPLIERS
from bandwise.planning.daily_mix import MixConfig
from bandwise.planning.recommendations import RecommendationConfig
from bandwise.planning.rotation_tracker import RotationConfig
from bandwise.study.spaced_repetition import SRSConfig
from bandwise.study.streak import StreakConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BANDWISE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # General
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum level written to stderr by the CLI",
    )
    random_seed: Optional[int] = Field(
        default=None,
        description="Seed for interleaving choices (unset keeps production variety)",
    )
    cache_ttl_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Lifetime of cached daily plans",
    )
    cache_max_size: int = Field(
        default=100,
        ge=1,
        description="Maximum cached plans held in memory",
    )

    # ========================================
    # Spaced Repetition
    # ========================================
    srs_initial_stability: float = Field(default=0.3, ge=0.0, le=1.0)
    srs_success_gain: float = Field(
        default=0.5,
        gt=0.0,
        le=1.0,
        description="Share of the gap to full stability closed by a perfect review",
    )
    srs_hint_penalty: float = Field(default=0.25, ge=0.0, description="Gain reduction per hint")
    srs_failure_decay: float = Field(
        default=0.6,
        gt=0.0,
        lt=1.0,
        description="Stability multiplier on a failed review",
    )
    srs_interval_growth: float = Field(default=2.5, gt=0.0)
    srs_min_interval_days: int = Field(default=1, ge=1)
    srs_max_interval_days: int = Field(default=180, ge=1)
    srs_leech_threshold: int = Field(
        default=2,
        ge=0,
        description="Items failed more than this many times are leeches",
    )
    srs_forgetting_scale: float = Field(default=2.0, gt=0.0)

    # ========================================
    # Band Progression
    # ========================================
    band_performance_window: int = Field(default=20, ge=1)
    band_min_sample_size: int = Field(default=10, ge=1)
    band_promote_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    band_demote_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    band_multipliers: dict[str, float] = Field(
        default_factory=lambda: dict(BAND_MULTIPLIERS),
        description="Difficulty/time multiplier per band letter",
    )

    # ========================================
    # Domains & Gates
    # ========================================
    gate_completion_rate: float = Field(default=0.7, ge=0.0, le=1.0)
    gate_stable_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    gate_stable_sample: int = Field(default=10, ge=1)

    # ========================================
    # Daily Mix
    # ========================================
    mix_new_ratio: float = Field(default=0.6, ge=0.0, le=1.0)
    mix_interleave_ratio: float = Field(default=0.2, ge=0.0, le=1.0)
    mix_review_ratio: float = Field(default=0.2, ge=0.0, le=1.0)
    mix_minutes_per_item: float = Field(default=2.0, gt=0.0)
    mix_review_minutes_per_item: float = Field(default=1.0, gt=0.0)
    mix_review_base_cap: int = Field(default=10, ge=0)
    mix_review_cap_per_band: int = Field(default=5, ge=0)
    mix_recovery_difficulty_factor: float = Field(default=0.8, gt=0.0, le=1.0)
    mix_recovery_hint_factor: float = Field(default=0.5, ge=0.0, le=1.0)
    mix_default_domain: str = Field(default="general")

    # ========================================
    # Streaks
    # ========================================
    streak_freeze_window_days: int = Field(default=7, ge=1)
    streak_max_freeze_tokens: int = Field(default=2, ge=0)

    # ========================================
    # Rotations
    # ========================================
    rotation_min_goal_attempts: int = Field(default=3, ge=1)
    rotation_goal_accuracy: float = Field(default=0.7, ge=0.0, le=1.0)
    rotation_items_per_goal: int = Field(default=10, ge=1)
    rotation_min_daily_target: int = Field(default=5, ge=0)
    rotation_critical_days: int = Field(default=7, ge=0)
    rotation_high_urgency_days: int = Field(default=30, ge=0)

    # ========================================
    # Recommendations
    # ========================================
    max_recommendations: int = Field(default=5, ge=1)
    review_backlog_high: int = Field(default=10, ge=0)
    weak_domain_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    fatigue_window_hours: int = Field(default=24, ge=1)
    fatigue_threshold: int = Field(
        default=5,
        ge=0,
        description="Trailing-window activity count above which rest is forced",
    )
    challenge_accuracy: float = Field(default=0.85, ge=0.0, le=1.0)
    challenge_min_band: int = Field(default=3, ge=1, le=5)

    # ========================================
    # Component configs
    # ========================================

    def get_srs_config(self) -> SRSConfig:
        return SRSConfig(
            initial_stability=self.srs_initial_stability,
            success_gain=self.srs_success_gain,
            hint_penalty=self.srs_hint_penalty,
            failure_decay=self.srs_failure_decay,
            interval_growth=self.srs_interval_growth,
            min_interval_days=self.srs_min_interval_days,
            max_interval_days=self.srs_max_interval_days,
            leech_threshold=self.srs_leech_threshold,
            forgetting_scale=self.srs_forgetting_scale,
        )

    def get_band_config(self) -> BandConfig:
        return BandConfig(
            performance_window=self.band_performance_window,
            min_sample_size=self.band_min_sample_size,
            promote_threshold=self.band_promote_threshold,
            demote_threshold=self.band_demote_threshold,
        )

    def get_domain_config(self) -> DomainProgressionConfig:
        return DomainProgressionConfig(
            gate_completion_rate=self.gate_completion_rate,
            stable_threshold=self.gate_stable_threshold,
            stable_sample=self.gate_stable_sample,
        )

    def get_mix_config(self) -> MixConfig:
        return MixConfig(
            new_ratio=self.mix_new_ratio,
            interleave_ratio=self.mix_interleave_ratio,
            review_ratio=self.mix_review_ratio,
            minutes_per_item=self.mix_minutes_per_item,
            review_minutes_per_item=self.mix_review_minutes_per_item,
            band_multipliers=dict(self.band_multipliers),
            review_base_cap=self.mix_review_base_cap,
            review_cap_per_band=self.mix_review_cap_per_band,
            recovery_difficulty_factor=self.mix_recovery_difficulty_factor,
            recovery_hint_factor=self.mix_recovery_hint_factor,
            weak_threshold=self.weak_domain_threshold,
            default_domain=self.mix_default_domain,
        )

    def get_streak_config(self) -> StreakConfig:
        return StreakConfig(
            freeze_window_days=self.streak_freeze_window_days,
            max_freeze_tokens=self.streak_max_freeze_tokens,
        )

    def get_rotation_config(self) -> RotationConfig:
        return RotationConfig(
            min_goal_attempts=self.rotation_min_goal_attempts,
            goal_accuracy_threshold=self.rotation_goal_accuracy,
            items_per_goal=self.rotation_items_per_goal,
            min_daily_target=self.rotation_min_daily_target,
            critical_days=self.rotation_critical_days,
            high_urgency_days=self.rotation_high_urgency_days,
        )

    def get_recommendation_config(self) -> RecommendationConfig:
        return RecommendationConfig(
            max_recommendations=self.max_recommendations,
            review_backlog_high=self.review_backlog_high,
            weak_domain_threshold=self.weak_domain_threshold,
            fatigue_window_hours=self.fatigue_window_hours,
            fatigue_threshold=self.fatigue_threshold,
            challenge_accuracy=self.challenge_accuracy,
            challenge_min_band=self.challenge_min_band,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
