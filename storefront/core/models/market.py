"""Per-turn market models: persona context, momentum and turn results.

Everything here is ephemeral. It lives for a single turn and is never
persisted; MemoryState (see memory.py) is the only durable record.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from .memory import Decision


Mood = Literal["terrible", "bad", "neutral", "good", "great"]
MomentumMood = Literal["mass_exit", "mass_adoption", "neutral"]


# =============================================================================
# Persona context
# =============================================================================


class FinancialContext(BaseModel):
    budget_remaining: float
    is_payday: bool
    had_recent_expense: bool
    budget_tightness: Literal["tight", "comfortable"]


class TemporalContext(BaseModel):
    day_of_week: str
    time_of_day: str
    is_rushing: bool
    is_weekend: bool
    is_monday_morning: bool
    is_friday_afternoon: bool


class EmotionalContext(BaseModel):
    current_mood: Mood
    mood_reason: str
    mood_index: int = Field(ge=0, le=4)
    is_bad_mood: bool
    is_good_mood: bool


class SituationalContext(BaseModel):
    with_friends: bool
    has_alternative: bool
    distance_to_competitor: int | None = None
    quality_expectation: int = Field(ge=1, le=10)
    is_first_visit: bool


class PersonaContext(BaseModel):
    """Circumstances a persona is in when it meets the business this turn."""

    financial: FinancialContext
    temporal: TemporalContext
    emotional: EmotionalContext
    situational: SituationalContext
    turn_number: int
    generated_at: datetime = Field(default_factory=datetime.now)


# =============================================================================
# Momentum
# =============================================================================


class Momentum(BaseModel):
    """Aggregate behaviour of every persona evaluated so far this turn."""

    leaving: float = 0.0
    staying: float = 0.0
    switching: float = 0.0
    mood: MomentumMood = "neutral"


# =============================================================================
# Turn input
# =============================================================================


class TurnRequest(BaseModel):
    """Validated business decision for one turn."""

    price: float = Field(gt=0)
    quality: float = Field(ge=1, le=10)
    event: str = Field(min_length=1, max_length=200)
    turn_number: int = Field(default=1, ge=1)
    business_state: dict[str, Any] | None = None


# =============================================================================
# Turn output
# =============================================================================


class ResultContext(BaseModel):
    mood: str
    budget_remaining: float
    is_rushing: bool
    trust: int


class PersonaResult(BaseModel):
    """One persona's answer for the turn.

    ``error`` marks results synthesized after an oracle failure; they are
    counted in the summary but never written to memory.
    """

    persona_id: int
    persona_name: str
    archetype: str
    decision: Decision
    reasoning: str = ""
    emotion: str = "neutral"
    price_perception: str = "unknown"
    context: ResultContext | None = None
    error: bool = False
    batch_index: int = 0
    momentum_seen: Momentum | None = None
    base_sensitivity: float = 0.0
    effective_sensitivity: float = 0.0


class TurnSummary(BaseModel):
    total_personas: int = 0
    buy_count: int = 0
    skip_count: int = 0
    switch_count: int = 0
    error_count: int = 0
    buy_rate: float = 0.0
    skip_rate: float = 0.0
    switch_rate: float = 0.0


class ArchetypeCounts(BaseModel):
    buy: int = 0
    skip: int = 0
    switch: int = 0
    total: int = 0


class TrustDistribution(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0


class BrandHealth(BaseModel):
    permanently_gone: int = 0
    on_last_chance: int = 0
    has_routine: int = 0
    average_trust: float = 0.0


class TurnMetadata(BaseModel):
    price: float
    quality: float
    event: str
    timestamp: datetime = Field(default_factory=datetime.now)
    batches_processed: int = 0
    oracle: str = ""


class TurnResult(BaseModel):
    """Everything a turn produces.

    ``success`` is False when the turn could not run at all (empty catalog)
    or when every oracle call failed; ``error`` then carries the reason.
    """

    success: bool
    turn_number: int
    results: list[PersonaResult] = Field(default_factory=list)
    summary: TurnSummary = Field(default_factory=TurnSummary)
    momentum: Momentum = Field(default_factory=Momentum)
    market_mood: str = "Balanced"
    archetype_breakdown: dict[str, ArchetypeCounts] = Field(default_factory=dict)
    emotion_breakdown: dict[str, int] = Field(default_factory=dict)
    price_perception_breakdown: dict[str, int] = Field(default_factory=dict)
    trust_distribution: TrustDistribution = Field(default_factory=TrustDistribution)
    brand_health: BrandHealth = Field(default_factory=BrandHealth)
    metadata: TurnMetadata | None = None
    error: str | None = None
