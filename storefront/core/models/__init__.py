"""Pydantic models for Storefront."""

from .population import Archetype, Persona, TimeOfDay
from .memory import (
    Decision,
    EMOTIONS,
    NEGATIVE_EMOTIONS,
    POSITIVE_EMOTIONS,
    Visit,
    PriceAnchoring,
    PeakExperience,
    ExperienceTracking,
    CompetitorKnowledge,
    LifetimeStats,
    MemoryFlags,
    MemoryState,
    PricePerception,
    HabitBreakage,
    HabitStatus,
    FrustrationStatus,
    DecisionContext,
)
from .market import (
    Mood,
    MomentumMood,
    FinancialContext,
    TemporalContext,
    EmotionalContext,
    SituationalContext,
    PersonaContext,
    Momentum,
    TurnRequest,
    ResultContext,
    PersonaResult,
    TurnSummary,
    ArchetypeCounts,
    TrustDistribution,
    BrandHealth,
    TurnMetadata,
    TurnResult,
)

__all__ = [
    # Population
    "Archetype",
    "Persona",
    "TimeOfDay",
    # Memory
    "Decision",
    "EMOTIONS",
    "NEGATIVE_EMOTIONS",
    "POSITIVE_EMOTIONS",
    "Visit",
    "PriceAnchoring",
    "PeakExperience",
    "ExperienceTracking",
    "CompetitorKnowledge",
    "LifetimeStats",
    "MemoryFlags",
    "MemoryState",
    "PricePerception",
    "HabitBreakage",
    "HabitStatus",
    "FrustrationStatus",
    "DecisionContext",
    # Market
    "Mood",
    "MomentumMood",
    "FinancialContext",
    "TemporalContext",
    "EmotionalContext",
    "SituationalContext",
    "PersonaContext",
    "Momentum",
    "TurnRequest",
    "ResultContext",
    "PersonaResult",
    "TurnSummary",
    "ArchetypeCounts",
    "TrustDistribution",
    "BrandHealth",
    "TurnMetadata",
    "TurnResult",
]
