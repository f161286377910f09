"""Turn simulation: persona memory, context, momentum, oracle and engine."""

from .aggregation import (
    compute_archetype_breakdown,
    compute_brand_health,
    compute_emotion_breakdown,
    compute_price_perception_breakdown,
    compute_trust_distribution,
    compute_turn_summary,
)
from .context import generate_context
from .engine import MarketEngine, build_engine, run_turn
from .memory import MemoryStore
from .momentum import apply_social_pressure, compute_momentum, market_mood_label
from .oracle import (
    DecisionOracle,
    DecisionRequest,
    LLMDecisionOracle,
    OracleDecision,
    OracleError,
    get_oracle,
    parse_decision,
)
from .progress import TurnProgress
from .sensitivity import effective_sensitivity

__all__ = [
    "DecisionOracle",
    "DecisionRequest",
    "LLMDecisionOracle",
    "MarketEngine",
    "MemoryStore",
    "OracleDecision",
    "OracleError",
    "TurnProgress",
    "apply_social_pressure",
    "build_engine",
    "compute_archetype_breakdown",
    "compute_brand_health",
    "compute_emotion_breakdown",
    "compute_momentum",
    "compute_price_perception_breakdown",
    "compute_trust_distribution",
    "compute_turn_summary",
    "effective_sensitivity",
    "generate_context",
    "get_oracle",
    "market_mood_label",
    "parse_decision",
    "run_turn",
]
