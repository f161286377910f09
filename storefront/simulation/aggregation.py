"""Aggregation of per-persona results into turn-level statistics.

Pure reducers: each takes the turn's result list (or memory snapshots for
brand health) and returns a model. Error results count toward the summary
and archetype breakdown but not toward emotion or perception histograms.
"""

from collections import defaultdict
from typing import Iterable

from ..core.models import (
    ArchetypeCounts,
    BrandHealth,
    Decision,
    MemoryState,
    PersonaResult,
    TrustDistribution,
    TurnSummary,
)


DEFAULT_TRUST = 50


def compute_turn_summary(results: list[PersonaResult]) -> TurnSummary:
    total = len(results)
    buy = sum(1 for r in results if r.decision == Decision.BUY)
    skip = sum(1 for r in results if r.decision == Decision.SKIP)
    switch = sum(1 for r in results if r.decision == Decision.SWITCH)
    errors = sum(1 for r in results if r.error)

    return TurnSummary(
        total_personas=total,
        buy_count=buy,
        skip_count=skip,
        switch_count=switch,
        error_count=errors,
        buy_rate=buy / total if total else 0.0,
        skip_rate=skip / total if total else 0.0,
        switch_rate=switch / total if total else 0.0,
    )


def compute_archetype_breakdown(
    results: list[PersonaResult],
) -> dict[str, ArchetypeCounts]:
    breakdown: dict[str, ArchetypeCounts] = {}
    for r in results:
        counts = breakdown.setdefault(r.archetype, ArchetypeCounts())
        counts.total += 1
        if r.decision == Decision.BUY:
            counts.buy += 1
        elif r.decision == Decision.SKIP:
            counts.skip += 1
        else:
            counts.switch += 1
    return breakdown


def compute_emotion_breakdown(results: list[PersonaResult]) -> dict[str, int]:
    counts: dict[str, int] = defaultdict(int)
    for r in results:
        if not r.error:
            counts[r.emotion] += 1
    return dict(counts)


def compute_price_perception_breakdown(results: list[PersonaResult]) -> dict[str, int]:
    counts: dict[str, int] = defaultdict(int)
    for r in results:
        if not r.error:
            counts[r.price_perception] += 1
    return dict(counts)


def compute_trust_distribution(results: list[PersonaResult]) -> TrustDistribution:
    """Bucket trust as seen at evaluation time: low <50, medium <80, high otherwise."""
    dist = TrustDistribution()
    for r in results:
        trust = r.context.trust if r.context is not None else DEFAULT_TRUST
        if trust < 50:
            dist.low += 1
        elif trust < 80:
            dist.medium += 1
        else:
            dist.high += 1
    return dist


def compute_brand_health(states: Iterable[MemoryState]) -> BrandHealth:
    health = BrandHealth()
    trust_sum = 0
    count = 0
    for state in states:
        count += 1
        trust_sum += state.trust_score
        if state.flags.is_permanently_gone:
            health.permanently_gone += 1
        if state.flags.is_on_last_chance:
            health.on_last_chance += 1
        if state.experience_tracking.has_routine:
            health.has_routine += 1
    health.average_trust = round(trust_sum / count, 2) if count else 0.0
    return health
