"""
Core data models for the adaptive learning scheduler.

Every entity the scheduler reads or produces is an explicit record:
- ReviewItem: per-item spaced repetition memory state
- BandStatus: difficulty tier, rolling performance, gates, history
- DomainStatus: per-domain completion and lifecycle state
- DailyMix: one day's composed session
- Recommendation: a ranked next action
- GamificationState: xp, level, streak, badges, freeze tokens
- Rotation / Goal / ActivityRecord: time-boxed placement inputs

Records are plain dataclasses. Components never mutate an input record in
place; they return updated copies built with ``dataclasses.replace``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


# =============================================================================
# Enums
# =============================================================================


class Band(str, Enum):
    """Difficulty band, A (softest) to E (hardest)."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"

    @property
    def ordinal(self) -> int:
        return _BAND_ORDER.index(self) + 1

    @classmethod
    def from_ordinal(cls, ordinal: int) -> "Band":
        ordinal = max(1, min(len(_BAND_ORDER), ordinal))
        return _BAND_ORDER[ordinal - 1]

    def easier(self) -> "Band":
        return Band.from_ordinal(self.ordinal - 1)

    def harder(self) -> "Band":
        return Band.from_ordinal(self.ordinal + 1)

    @property
    def is_lowest(self) -> bool:
        return self is Band.A

    @property
    def is_highest(self) -> bool:
        return self is Band.E


_BAND_ORDER = [Band.A, Band.B, Band.C, Band.D, Band.E]

# Difficulty and time scaling per band
BAND_MULTIPLIERS: dict[str, float] = {
    "A": 0.8,
    "B": 0.9,
    "C": 1.0,
    "D": 1.2,
    "E": 1.5,
}


class DomainState(str, Enum):
    """Lifecycle of a content domain."""

    LOCKED = "locked"
    ACTIVE = "active"
    GATED = "gated"
    COMPLETED = "completed"


class Priority(str, Enum):
    """Recommendation priority tier."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Higher rank sorts first."""
        return {
            Priority.CRITICAL: 4,
            Priority.HIGH: 3,
            Priority.MEDIUM: 2,
            Priority.LOW: 1,
        }[self]


class RecommendationType(str, Enum):
    ROTATION_URGENT = "rotation_urgent"
    REVIEW = "review"
    REMEDIAL = "remedial"
    GOAL = "goal"
    DOMAIN = "domain"
    BREAK = "break"
    TOPIC = "topic"
    CHALLENGE = "challenge"


class ActionType(str, Enum):
    START_CASE = "start_case"
    REVIEW_CARDS = "review_cards"
    PRACTICE_QUIZ = "practice_quiz"
    TAKE_BREAK = "take_break"
    LEARN_NEW = "learn_new"


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"

    @classmethod
    def from_hour(cls, hour: int) -> "TimeOfDay":
        if 6 <= hour < 12:
            return cls.MORNING
        if 12 <= hour < 17:
            return cls.AFTERNOON
        if 17 <= hour < 22:
            return cls.EVENING
        return cls.NIGHT


class SectionKind(str, Enum):
    NEW = "new"
    INTERLEAVING = "interleaving"
    REVIEW = "review"


# =============================================================================
# Spaced repetition
# =============================================================================


@dataclass
class ReviewItem:
    """A spaced repetition card for one piece of content."""

    id: str
    content_id: str
    domain: str
    stability: float = 0.3
    interval: int = 0  # days
    review_count: int = 0
    fail_count: int = 0
    last_reviewed_at: Optional[datetime] = None
    next_due_at: Optional[datetime] = None
    is_leech: bool = False
    last_grade: Optional[int] = None

    @classmethod
    def new(
        cls,
        item_id: str,
        content_id: str,
        domain: str,
        now: datetime,
        initial_stability: float = 0.3,
    ) -> "ReviewItem":
        """Create an item on first exposure, due immediately."""
        return cls(
            id=item_id,
            content_id=content_id,
            domain=domain,
            stability=initial_stability,
            interval=0,
            next_due_at=now,
        )

    @property
    def never_reviewed(self) -> bool:
        return self.last_reviewed_at is None or self.review_count == 0

    def is_due(self, now: datetime) -> bool:
        return self.next_due_at is None or self.next_due_at <= now


# =============================================================================
# Band progression
# =============================================================================


@dataclass
class GateProgress:
    """The four readiness gates that must all hold before promotion."""

    mini_osce_passed: bool = False
    retention_check_passed: bool = False
    srs_cards_stable: bool = False
    complication_case_passed: bool = False

    @property
    def all_passed(self) -> bool:
        return not self.missing()

    def missing(self) -> list[str]:
        """Names of gates that are not yet satisfied."""
        gates = {
            "mini_osce_passed": self.mini_osce_passed,
            "retention_check_passed": self.retention_check_passed,
            "srs_cards_stable": self.srs_cards_stable,
            "complication_case_passed": self.complication_case_passed,
        }
        return [name for name, passed in gates.items() if not passed]


@dataclass
class RecentPerformance:
    """Rolling correct-rate over the last N graded items."""

    correct_rate: float = 0.0
    sample_size: int = 0


@dataclass
class BandHistoryEntry:
    band: Band
    date: date
    reason: str = ""


@dataclass
class BandStatus:
    current_band: Band = Band.A
    streak_at_band: int = 0
    recent_performance: RecentPerformance = field(default_factory=RecentPerformance)
    gate_progress: GateProgress = field(default_factory=GateProgress)
    band_history: list[BandHistoryEntry] = field(default_factory=list)
    last_evaluated_on: Optional[date] = None
    last_transition_on: Optional[date] = None
    recovery_pending: bool = False


# =============================================================================
# Domains and daily mix
# =============================================================================


@dataclass
class DomainStatus:
    domain: str
    total_items: int = 0
    items_completed: int = 0
    status: DomainState = DomainState.LOCKED

    @property
    def completion_rate(self) -> float:
        if self.total_items <= 0:
            return 0.0
        return min(1.0, self.items_completed / self.total_items)

    @property
    def is_open(self) -> bool:
        """Active or gated domains accept new content."""
        return self.status in (DomainState.ACTIVE, DomainState.GATED)


@dataclass
class MixSection:
    kind: SectionKind
    domain: Optional[str] = None
    items: list[str] = field(default_factory=list)
    estimated_minutes: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.items


@dataclass
class DailyMix:
    """One day's composed session."""

    target_band: Band
    new_content: MixSection
    interleaving: MixSection
    review: MixSection
    is_recovery_day: bool = False
    difficulty_multiplier: float = 1.0
    hint_penalty_multiplier: float = 1.0
    weak_domains: list[str] = field(default_factory=list)
    leech_items: list[str] = field(default_factory=list)
    generated_on: Optional[date] = None

    @property
    def sections(self) -> list[MixSection]:
        return [self.new_content, self.interleaving, self.review]

    @property
    def total_estimated_time(self) -> float:
        return (
            self.new_content.estimated_minutes
            + self.interleaving.estimated_minutes
            + self.review.estimated_minutes
        )

    @property
    def total_items(self) -> int:
        return sum(len(s.items) for s in self.sections)


# =============================================================================
# Recommendations
# =============================================================================


@dataclass
class Recommendation:
    id: str
    type: RecommendationType
    priority: Priority
    title: str
    reasoning: str
    estimated_minutes: int
    reward_xp: int
    action_type: ActionType
    target_domain: Optional[str] = None
    related_goal_ids: list[str] = field(default_factory=list)
    daily_target: Optional[int] = None


# =============================================================================
# Gamification
# =============================================================================


@dataclass
class GamificationState:
    xp: int = 0
    level: int = 1
    streak: int = 0
    longest_streak: int = 0
    badges: list[str] = field(default_factory=list)
    freeze_tokens: int = 0
    last_activity_at: Optional[datetime] = None
    last_freeze_on: Optional[date] = None


# =============================================================================
# Rotations
# =============================================================================


@dataclass
class Goal:
    id: str
    title: str = ""
    required: bool = True
    min_attempts: int = 3


@dataclass
class Rotation:
    """A time-boxed placement with a domain focus and deadline."""

    id: str
    name: str
    domain: str
    start_date: date
    end_date: date
    goal_ids: list[str] = field(default_factory=list)


@dataclass
class ActivityRecord:
    """One answered item from the activity log."""

    item_id: str
    correct: bool
    timestamp: datetime
    domain: str = ""
    goal_ids: list[str] = field(default_factory=list)
    rotation_id: Optional[str] = None


@dataclass
class RotationProgress:
    rotation_id: str
    items_answered: int
    correct_answers: int
    accuracy: float  # 0-1
    goals_completed: list[str]
    total_goals: int
    completion_percentage: float  # 0-100
    days_remaining: int
    days_elapsed: int
    total_days: int
    expected_completion: float  # 0-100
    on_track: bool
    recommendation_text: str

    @property
    def goals_remaining(self) -> int:
        return max(0, self.total_goals - len(self.goals_completed))


@dataclass
class CompletionForecast:
    will_complete: bool
    projected_completion: float
    daily_target: int
    pace_per_day: float = 0.0


# =============================================================================
# Learner inputs
# =============================================================================


@dataclass
class LearnerProfile:
    learner_id: str
    band_status: BandStatus = field(default_factory=BandStatus)
    gamification: GamificationState = field(default_factory=GamificationState)
    domain_statuses: list[DomainStatus] = field(default_factory=list)
    focus_domains: list[str] = field(default_factory=list)
    recent_domains: list[str] = field(default_factory=list)  # most recent first
    daily_minutes: int = 30


@dataclass
class LearnerSnapshot:
    """Everything the engine needs about one learner, as supplied by the caller."""

    profile: LearnerProfile
    review_items: list[ReviewItem] = field(default_factory=list)
    activity_log: list[ActivityRecord] = field(default_factory=list)
    rotation: Optional[Rotation] = None
    goals: list[Goal] = field(default_factory=list)
    available_content: dict[str, list[str]] = field(default_factory=dict)
    last_session_at: Optional[datetime] = None
