"""Effective price sensitivity for a persona in a given context."""

from ..core.models import Persona, PersonaContext


def effective_sensitivity(persona: Persona, context: PersonaContext, trust: int) -> float:
    """Adjust the persona's base price sensitivity for today's circumstances.

    Money pressure and low trust raise it; paydays, good moods and being in
    a hurry (for personas who value speed) lower it. Clamped to [0, 1].
    """
    s = persona.base_price_sensitivity

    if context.financial.budget_tightness == "tight":
        s += 0.10
    if context.financial.is_payday:
        s -= 0.10
    if context.financial.had_recent_expense:
        s += 0.05

    if context.emotional.is_bad_mood:
        s += 0.10
    if context.emotional.is_good_mood:
        s -= 0.05

    if context.temporal.is_rushing and persona.values_speed:
        s -= 0.15
    if context.temporal.is_friday_afternoon:
        s -= 0.05

    if trust < 60:
        s += 0.15
    if trust < 30:
        s += 0.25

    return max(0.0, min(1.0, s))
