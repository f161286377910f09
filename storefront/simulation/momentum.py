"""Market momentum and social pressure.

Momentum summarises what every persona evaluated so far this turn decided.
Later batches feel it as social pressure on their price sensitivity.
"""

from typing import Iterable

from ..core.models import Decision, Momentum, Persona, PersonaResult


def _as_decision(item: Decision | str | PersonaResult) -> Decision:
    if isinstance(item, PersonaResult):
        return item.decision
    return Decision(item)


def compute_momentum(decisions: Iterable[Decision | str | PersonaResult]) -> Momentum:
    """Cumulative leaving/staying/switching fractions over the given decisions.

    Mood is ``mass_exit`` when more than half left (Skip or Switch),
    ``mass_adoption`` when more than 60% bought, else ``neutral``.
    """
    buy = skip = switch = 0
    for item in decisions:
        decision = _as_decision(item)
        if decision == Decision.BUY:
            buy += 1
        elif decision == Decision.SKIP:
            skip += 1
        else:
            switch += 1

    total = buy + skip + switch
    if total == 0:
        return Momentum()

    if skip + switch > total * 0.5:
        mood = "mass_exit"
    elif buy > total * 0.6:
        mood = "mass_adoption"
    else:
        mood = "neutral"

    return Momentum(
        leaving=(skip + switch) / total,
        staying=buy / total,
        switching=switch / total,
        mood=mood,
    )


def apply_social_pressure(
    persona: Persona, base_sensitivity: float, momentum: Momentum | None
) -> float:
    """Shift sensitivity toward the crowd, scaled by the persona's social influence weight."""
    if momentum is None:
        return base_sensitivity

    weight = persona.social_influence_weight
    if momentum.leaving > 0.3:
        return min(1.0, base_sensitivity + (momentum.leaving - 0.3) * weight * 0.5)
    if momentum.staying > 0.6:
        return max(0.0, base_sensitivity - (momentum.staying - 0.6) * weight * 0.3)
    return base_sensitivity


def market_mood_label(momentum: Momentum) -> str:
    leaving = momentum.leaving
    staying = momentum.staying
    if leaving >= 0.7:
        return "Brand Crisis"
    if leaving >= 0.5:
        return "Mass Exodus"
    if leaving >= 0.3:
        return "Resentful"
    if staying >= 0.8:
        return "Viral Hype"
    if staying >= 0.6:
        return "FOMO Wave"
    if staying >= 0.55:
        return "Optimistic"
    if leaving >= 0.55:
        return "Skeptical"
    return "Balanced"
