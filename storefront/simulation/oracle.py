"""Decision oracle: turns a persona's situation into Buy, Skip or Switch.

The orchestrator only sees the ``DecisionOracle`` protocol. The production
implementation, ``LLMDecisionOracle``, renders a role-play prompt and asks
the configured LLM provider for a structured answer.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import BaseModel

from ..config import StorefrontConfig, get_config
from ..core.llm import simple_call_async
from ..core.models import (
    Decision,
    DecisionContext,
    EMOTIONS,
    HabitBreakage,
    Momentum,
    Persona,
    PersonaContext,
)


logger = logging.getLogger(__name__)


PRICE_PERCEPTIONS = ("cheap", "fair", "expensive", "outrageous")


class OracleError(Exception):
    """Raised when the oracle cannot produce a decision after all attempts."""


@dataclass
class DecisionRequest:
    """Everything the oracle may use to decide for one persona."""

    persona: Persona
    context: PersonaContext
    price: float
    quality: float
    event: str
    turn_number: int
    decision_context: DecisionContext
    effective_sensitivity: float
    momentum: Momentum | None = None
    habit_breakage: HabitBreakage | None = None
    business_state: dict[str, Any] | None = None


class OracleDecision(BaseModel):
    """A decision after coercion. ``error`` marks an unusable oracle answer."""

    decision: Decision
    reasoning: str = ""
    emotion: str = "neutral"
    price_perception: str = "unknown"
    error: bool = False


class DecisionOracle(Protocol):
    async def decide(self, request: DecisionRequest) -> dict[str, Any]: ...


# =============================================================================
# Response coercion
# =============================================================================

_DECISIONS_BY_NAME = {d.value.lower(): d for d in Decision}


def parse_decision(raw: dict[str, Any] | None) -> OracleDecision:
    """Coerce a raw oracle answer.

    Unknown or missing decisions become Skip with ``error=True``. Missing
    emotion falls back to "neutral", missing price perception to "unknown".
    Accepts both ``price_perception`` and ``pricePerception`` keys.
    """
    raw = raw or {}
    reasoning = str(raw.get("reasoning") or "")

    emotion = raw.get("emotion")
    emotion = str(emotion).strip().lower() if emotion else "neutral"

    perception = raw.get("price_perception", raw.get("pricePerception"))
    perception = str(perception).strip().lower() if perception else "unknown"

    decision_raw = raw.get("decision")
    decision = (
        _DECISIONS_BY_NAME.get(str(decision_raw).strip().lower())
        if decision_raw is not None
        else None
    )
    if decision is None:
        return OracleDecision(
            decision=Decision.SKIP,
            reasoning=f"Error: oracle returned invalid decision {decision_raw!r}",
            emotion=emotion,
            price_perception=perception,
            error=True,
        )

    return OracleDecision(
        decision=decision,
        reasoning=reasoning,
        emotion=emotion,
        price_perception=perception,
    )


# =============================================================================
# Prompt + schema
# =============================================================================


def _pct(value: float) -> str:
    return f"{value * 100:.0f}%"


def build_decision_prompt(request: DecisionRequest) -> str:
    persona = request.persona
    ctx = request.context
    memory = request.decision_context

    lines = [
        f"You are {persona.name}, a {persona.archetype.value} customer.",
    ]
    if persona.backstory:
        lines.append(persona.backstory)
    lines += [
        "",
        "You are making a purchasing decision RIGHT NOW.",
        "",
        "Current Situation:",
        f"- Event: {request.event}",
        f"- Price: ${request.price:.2f}",
        f"- Quality: {request.quality:g}/10",
        f"- Day: {ctx.temporal.day_of_week} {ctx.temporal.time_of_day}",
        f"- Your current mood: {ctx.emotional.current_mood} ({ctx.emotional.mood_reason})",
        f"- Budget remaining: ${ctx.financial.budget_remaining:.2f}"
        + (" (tight)" if ctx.financial.budget_tightness == "tight" else ""),
        f"- Trust in this place: {memory.trust}/100",
        f"- Time pressure: {'RUSHING' if ctx.temporal.is_rushing else 'relaxed'}",
    ]
    if ctx.situational.with_friends:
        lines.append("- You are with friends")
    if ctx.situational.has_alternative:
        lines.append(
            f"- A competitor is {ctx.situational.distance_to_competitor} min away"
        )

    if request.momentum is not None:
        lines += [
            "",
            "Market Momentum (what others are doing):",
            f"- {_pct(request.momentum.leaving)} of people are leaving/switching",
            f"- {_pct(request.momentum.staying)} of people are buying",
            f"- Overall mood: {request.momentum.mood}",
        ]

    lines.append("")
    if memory.visit_history:
        lines.append("Your Recent Visits:")
        for i, visit in enumerate(memory.visit_history, 1):
            lines.append(
                f"  {i}. {visit.decision.value} - felt {visit.emotion} "
                f"(price was ${visit.price:.2f})"
            )
    else:
        lines.append("This is your FIRST visit to this place.")

    frustration = memory.frustration_status
    if frustration.is_permanently_gone:
        lines.append(
            "WARNING: YOU ARE DONE WITH THIS PLACE (3 bad experiences). "
            "You will NEVER return."
        )
    elif frustration.is_on_last_chance:
        lines.append("WARNING: ONE MORE BAD EXPERIENCE and you are leaving FOREVER.")
    if memory.habit_status.has_routine:
        lines.append("You have a routine here (5+ consecutive good visits).")
    if request.habit_breakage and request.habit_breakage.habit_broken:
        lines.append(
            "Your routine here was just broken by the price change. "
            f"Frustration +{request.habit_breakage.extra_frustration}."
        )
    if memory.peak_experience:
        peak = memory.peak_experience
        lines.append(
            f"Best visit so far: quality {peak.quality:g}/10 at ${peak.price:.2f}."
        )

    lines += [
        "",
        "Your Personality Traits:",
        f"- Price sensitivity: {_pct(persona.base_price_sensitivity)}",
        f"- Brand loyalty: {_pct(persona.brand_loyalty)}",
        f"- Social influence: {_pct(persona.social_influence_weight)}",
        f"- Quality focus: {_pct(persona.quality_threshold)}",
        "",
        "Price Perception:",
        f"- Your effective price sensitivity right now: {_pct(request.effective_sensitivity)}",
    ]
    if memory.price_perception.perception != "unknown":
        lines.append(f"- Price feels: {memory.price_perception.perception}")

    if request.business_state:
        lines += ["", "Business notes:"]
        for key, value in request.business_state.items():
            lines.append(f"- {key}: {value}")

    lines += [
        "",
        "Decide: Buy, Skip, or Switch (go to a competitor).",
        "Give your reasoning in 1-2 sentences, the emotion you feel about this "
        "place after this visit, and how the price feels to you.",
    ]
    return "\n".join(lines)


def build_decision_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "decision": {"type": "string", "enum": [d.value for d in Decision]},
            "reasoning": {"type": "string"},
            "emotion": {"type": "string", "enum": list(EMOTIONS)},
            "price_perception": {"type": "string", "enum": list(PRICE_PERCEPTIONS)},
        },
        "required": ["decision", "reasoning", "emotion", "price_perception"],
        "additionalProperties": False,
    }


# =============================================================================
# LLM-backed oracle
# =============================================================================


class LLMDecisionOracle:
    """Decision oracle backed by any registered LLM provider.

    Args:
        model: "provider/model" string
        timeout: Seconds allowed per attempt
        max_retries: Attempts before giving up with OracleError
        max_tokens: Output token cap per call
    """

    def __init__(
        self,
        model: str,
        timeout: float = 30.0,
        max_retries: int = 2,
        max_tokens: int | None = 400,
    ):
        self.model = model
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.max_tokens = max_tokens

    async def decide(self, request: DecisionRequest) -> dict[str, Any]:
        prompt = build_decision_prompt(request)
        schema = build_decision_schema()
        persona_id = request.persona.id

        last_error = ""
        for attempt in range(self.max_retries):
            try:
                call_start = time.time()
                response, usage = await asyncio.wait_for(
                    simple_call_async(
                        prompt=prompt,
                        response_schema=schema,
                        schema_name="persona_decision",
                        model=self.model,
                        max_tokens=self.max_tokens,
                    ),
                    timeout=self.timeout,
                )
                call_elapsed = time.time() - call_start
                logger.info(
                    f"[ORACLE] Persona {persona_id} - {call_elapsed:.2f}s "
                    f"({usage.input_tokens}/{usage.output_tokens} tokens)"
                )
                if not response:
                    last_error = "empty response"
                    continue
                return response
            except asyncio.TimeoutError:
                last_error = f"timed out after {self.timeout:g}s"
                logger.warning(
                    f"[ORACLE] Persona {persona_id} - attempt {attempt + 1} {last_error}"
                )
            except Exception as e:
                last_error = str(e)
                logger.warning(
                    f"[ORACLE] Persona {persona_id} - attempt {attempt + 1} failed: {e}"
                )

        raise OracleError(
            f"No decision for persona {persona_id} after "
            f"{self.max_retries} attempts: {last_error}"
        )


def get_oracle(config: StorefrontConfig | None = None) -> LLMDecisionOracle:
    """Build the oracle described by config (global config when omitted)."""
    config = config or get_config()
    return LLMDecisionOracle(
        model=config.oracle.model,
        timeout=config.oracle.timeout_seconds,
        max_retries=config.oracle.max_retries,
        max_tokens=config.oracle.max_tokens,
    )
