"""Persona memory models.

MemoryState is the durable per-persona record carried across turns:
trust, a bounded visit history, price anchors, the frustration/habit
state machine, competitor knowledge, lifetime counters and flags.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Decision(str, Enum):
    BUY = "Buy"
    SKIP = "Skip"
    SWITCH = "Switch"


EMOTIONS = (
    "satisfied",
    "delighted",
    "loyal",
    "neutral",
    "frustrated",
    "angry",
    "betrayed",
)

NEGATIVE_EMOTIONS = frozenset({"frustrated", "angry", "betrayed"})
POSITIVE_EMOTIONS = frozenset({"satisfied", "delighted", "loyal"})


class Visit(BaseModel):
    """One answered visit. Never mutated after creation."""

    turn: int
    decision: Decision
    price: float
    quality: float
    emotion: str
    reasoning: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)


class PriceAnchoring(BaseModel):
    initial_price: float | None = Field(
        default=None, description="First price ever seen; set once"
    )
    last_price_paid: float | None = None
    lowest_price_seen: float | None = None
    highest_price_seen: float | None = None


class PeakExperience(BaseModel):
    turn: int
    quality: float
    price: float
    emotion: str


class ExperienceTracking(BaseModel):
    consecutive_frustrations: int = 0
    consecutive_buys: int = 0
    peak_experience: PeakExperience | None = None
    has_routine: bool = False
    routine_broken_count: int = 0


class CompetitorKnowledge(BaseModel):
    discovered_competitor: bool = False
    last_switch_turn: int | None = None


class LifetimeStats(BaseModel):
    total_visits: int = 0
    total_buys: int = 0
    total_skips: int = 0
    total_switches: int = 0
    total_spent: float = 0.0
    times_disappointed: int = 0
    times_delighted: int = 0


class MemoryFlags(BaseModel):
    is_permanently_gone: bool = False
    is_on_last_chance: bool = False
    last_chance_given_turn: int | None = None


class MemoryState(BaseModel):
    """Everything a persona remembers about the business."""

    trust_score: int = Field(default=100, ge=0, le=100)
    visit_history: list[Visit] = Field(default_factory=list)
    price_anchoring: PriceAnchoring = Field(default_factory=PriceAnchoring)
    experience_tracking: ExperienceTracking = Field(default_factory=ExperienceTracking)
    competitor_knowledge: CompetitorKnowledge = Field(
        default_factory=CompetitorKnowledge
    )
    lifetime_stats: LifetimeStats = Field(default_factory=LifetimeStats)
    flags: MemoryFlags = Field(default_factory=MemoryFlags)


# =============================================================================
# Derived views
# =============================================================================


class PricePerception(BaseModel):
    """How the current price reads against the persona's anchors."""

    perception: str = Field(
        description="unknown | cheap | fair | expensive | outrageous"
    )
    magnitude: float = 0.0
    vs_initial: float = 0.0
    vs_last: float = 0.0
    vs_lowest: float = 0.0
    anchor: str = "none"


class HabitBreakage(BaseModel):
    habit_broken: bool = False
    routine_broken_count: int = 0
    extra_frustration: int = 0


class HabitStatus(BaseModel):
    has_routine: bool
    consecutive_buys: int
    routine_broken_count: int


class FrustrationStatus(BaseModel):
    consecutive_frustrations: int
    is_on_last_chance: bool
    is_permanently_gone: bool


class DecisionContext(BaseModel):
    """Read-only composite of memory handed to the decision oracle."""

    trust: int
    visit_history: list[Visit]
    price_perception: PricePerception
    habit_status: HabitStatus
    frustration_status: FrustrationStatus
    peak_experience: PeakExperience | None = None
    competitor_knowledge: CompetitorKnowledge
    lifetime_stats: LifetimeStats
