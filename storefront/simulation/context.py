"""Per-turn persona context generation.

Builds the financial, temporal, emotional and situational circumstances a
persona is in when it meets the business. Every random draw goes through
the injected ``rng`` so a seeded ``random.Random`` reproduces a turn.
"""

import math
import random
from datetime import datetime

from ..core.models import (
    Archetype,
    EmotionalContext,
    FinancialContext,
    MemoryState,
    Persona,
    PersonaContext,
    SituationalContext,
    TemporalContext,
)


DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
WEEKDAYS = DAYS[:5]
WEEKEND = DAYS[5:]
MOODS = ("terrible", "bad", "neutral", "good", "great")

MOOD_REASONS = {
    "terrible": (
        "had a terrible morning",
        "got bad news",
        "slept poorly",
        "stressed about deadlines",
    ),
    "bad": ("running late", "frustrated with traffic", "minor annoyance", "tired"),
    "neutral": ("typical day", "nothing special", "routine"),
    "good": (
        "slept well",
        "productive morning",
        "nice weather",
        "looking forward to weekend",
    ),
    "great": ("got great news", "excited about plans", "feeling energized", "payday"),
}

RECENT_EXPENSE_PROBABILITY = {
    Archetype.STUDENT: 0.4,
    Archetype.PROFESSIONAL: 0.6,
    Archetype.RETIREE: 0.3,
    Archetype.PARENT: 0.7,
    Archetype.TOURIST: 0.5,
    Archetype.FREELANCER: 0.5,
    Archetype.HEALTH_CONSCIOUS: 0.4,
}

WITH_FRIENDS_PROBABILITY = {
    Archetype.STUDENT: 0.4,
    Archetype.PROFESSIONAL: 0.2,
    Archetype.RETIREE: 0.15,
    Archetype.PARENT: 0.3,
    Archetype.TOURIST: 0.6,
    Archetype.FREELANCER: 0.25,
    Archetype.HEALTH_CONSCIOUS: 0.2,
}

_WEEKDAY_RUSH = {"morning": 0.6, "lunch": 0.4, "afternoon": 0.3, "evening": 0.2}

RUSH_PROBABILITY: dict[str, dict[str, float]] = {
    "Monday": {"morning": 0.8, "lunch": 0.5, "afternoon": 0.3, "evening": 0.2},
    "Tuesday": _WEEKDAY_RUSH,
    "Wednesday": _WEEKDAY_RUSH,
    "Thursday": _WEEKDAY_RUSH,
    "Friday": {"morning": 0.5, "lunch": 0.3, "afternoon": 0.2, "evening": 0.1},
    "Saturday": {"morning": 0.2, "lunch": 0.2, "afternoon": 0.1, "evening": 0.1},
    "Sunday": {"morning": 0.1, "lunch": 0.2, "afternoon": 0.1, "evening": 0.1},
}
DEFAULT_RUSH_PROBABILITY = 0.3


def _clamp_mood(index: int) -> int:
    return max(0, min(4, index))


def generate_financial_context(
    persona: Persona, turn_number: int, rng: random.Random
) -> FinancialContext:
    low, high = persona.budget_range
    budget = round(rng.uniform(low, high), 2)

    if persona.archetype == Archetype.PROFESSIONAL:
        is_payday = turn_number % 14 == 0
    else:
        is_payday = turn_number % 30 == 0

    expense_p = RECENT_EXPENSE_PROBABILITY.get(persona.archetype, 0.5)
    had_recent_expense = rng.random() < expense_p

    tight = budget < low + (high - low) * 0.3
    return FinancialContext(
        budget_remaining=budget,
        is_payday=is_payday,
        had_recent_expense=had_recent_expense,
        budget_tightness="tight" if tight else "comfortable",
    )


def generate_temporal_context(persona: Persona, rng: random.Random) -> TemporalContext:
    is_weekday = rng.random() < persona.weekday_preference
    day = rng.choice(WEEKDAYS if is_weekday else WEEKEND)
    time_of_day = rng.choice(persona.preferred_times)

    base = RUSH_PROBABILITY.get(day, {}).get(time_of_day, DEFAULT_RUSH_PROBABILITY)
    modifier = 1.2 if persona.values_speed else 0.8
    is_rushing = rng.random() < base * modifier

    return TemporalContext(
        day_of_week=day,
        time_of_day=time_of_day,
        is_rushing=is_rushing,
        is_weekend=day in WEEKEND,
        is_monday_morning=day == "Monday" and time_of_day == "morning",
        is_friday_afternoon=day == "Friday" and time_of_day == "afternoon",
    )


def generate_emotional_context(
    persona: Persona,
    temporal: TemporalContext,
    memory: MemoryState,
    rng: random.Random,
) -> EmotionalContext:
    """Derive today's mood.

    Starts at neutral, perturbed by the persona's mood variance, then nudged
    by the calendar, by trust and by the balance of past disappointments.
    The index is clamped to [0, 4] after every step.
    """
    index = _clamp_mood(2 + math.floor((rng.random() - 0.5) * persona.mood_variance * 4))

    if temporal.is_monday_morning:
        index = _clamp_mood(index - 1)
    if temporal.is_friday_afternoon:
        index = _clamp_mood(index + 1)
    if temporal.is_weekend and persona.archetype == Archetype.PROFESSIONAL:
        index = _clamp_mood(index + 1)

    if memory.trust_score < 50:
        index = _clamp_mood(index - 1)
    if memory.trust_score > 80:
        index = _clamp_mood(index + 1)

    stats = memory.lifetime_stats
    if stats.times_disappointed > stats.times_delighted:
        index = _clamp_mood(index - 1)

    mood = MOODS[index]
    return EmotionalContext(
        current_mood=mood,
        mood_reason=rng.choice(MOOD_REASONS[mood]),
        mood_index=index,
        is_bad_mood=index <= 1,
        is_good_mood=index >= 3,
    )


def generate_situational_context(
    persona: Persona, memory: MemoryState, rng: random.Random
) -> SituationalContext:
    friends_p = WITH_FRIENDS_PROBABILITY.get(persona.archetype, 0.25)
    with_friends = rng.random() < friends_p

    has_alternative = rng.random() < persona.risk_tolerance * 0.7
    distance = rng.randint(1, 5) if has_alternative else None

    if persona.values_quality:
        expectation = rng.randint(7, 9)
    else:
        expectation = rng.randint(4, 8)

    return SituationalContext(
        with_friends=with_friends,
        has_alternative=has_alternative,
        distance_to_competitor=distance,
        quality_expectation=expectation,
        is_first_visit=memory.lifetime_stats.total_visits == 0,
    )


def generate_context(
    persona: Persona,
    memory: MemoryState,
    turn_number: int,
    rng: random.Random | None = None,
) -> PersonaContext:
    """Generate the full per-turn context for one persona.

    Args:
        persona: Persona being evaluated
        memory: Snapshot of the persona's memory (read only)
        turn_number: Current turn, used for payday cycles
        rng: Random source; a fresh unseeded Random when omitted

    Returns:
        PersonaContext for this persona and turn
    """
    rng = rng or random.Random()
    financial = generate_financial_context(persona, turn_number, rng)
    temporal = generate_temporal_context(persona, rng)
    emotional = generate_emotional_context(persona, temporal, memory, rng)
    situational = generate_situational_context(persona, memory, rng)
    return PersonaContext(
        financial=financial,
        temporal=temporal,
        emotional=emotional,
        situational=situational,
        turn_number=turn_number,
        generated_at=datetime.now(),
    )
