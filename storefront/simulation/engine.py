"""Market engine: runs one business turn across the persona population.

A turn shuffles the catalog, splits it into batches and evaluates batches
sequentially. Personas inside a batch are evaluated concurrently; every
later batch sees the cumulative momentum of the batches before it.
Memory is only written once all batches are done, so every persona in a
turn decides against the same pre-turn memory.
"""

import asyncio
import logging
import random
import time
from pathlib import Path
from typing import Any

from ..config import StorefrontConfig, get_config
from ..core.llm import close_oracle_providers
from ..core.models import (
    Decision,
    HabitBreakage,
    MemoryState,
    Momentum,
    Persona,
    PersonaResult,
    ResultContext,
    TurnMetadata,
    TurnRequest,
    TurnResult,
)
from ..population import CatalogError, load_catalog
from .aggregation import (
    compute_archetype_breakdown,
    compute_brand_health,
    compute_emotion_breakdown,
    compute_price_perception_breakdown,
    compute_trust_distribution,
    compute_turn_summary,
)
from .context import generate_context
from .memory import MemoryStore
from .momentum import apply_social_pressure, compute_momentum, market_mood_label
from .oracle import DecisionOracle, DecisionRequest, OracleDecision, get_oracle, parse_decision
from .progress import TurnProgress
from .sensitivity import effective_sensitivity


logger = logging.getLogger(__name__)


class MarketEngine:
    """Orchestrates a turn: context, oracle calls, memory updates, aggregation.

    Args:
        catalog: Personas taking part in every turn
        memory: Store holding each persona's durable memory
        oracle: Anything implementing DecisionOracle
        config: Runtime configuration (global config when omitted)
        rng: Random source for shuffling and context generation. Seeded from
            ``config.simulation.seed`` when omitted.
        progress: Optional TurnProgress for live display
    """

    def __init__(
        self,
        catalog: list[Persona],
        memory: MemoryStore,
        oracle: DecisionOracle,
        config: StorefrontConfig | None = None,
        rng: random.Random | None = None,
        progress: TurnProgress | None = None,
    ):
        self.catalog = list(catalog)
        self.memory = memory
        self.oracle = oracle
        self.config = config or get_config()
        self.rng = rng or random.Random(self.config.simulation.seed)
        self.progress = progress

        oracle_cfg = self.config.oracle
        # Outer deadline per persona covers every attempt the oracle makes
        self.persona_deadline = oracle_cfg.timeout_seconds * max(1, oracle_cfg.max_retries)

    # ── Public API ──

    def run_turn(
        self,
        price: float,
        quality: float,
        event: str,
        turn_number: int = 1,
        business_state: dict[str, Any] | None = None,
    ) -> TurnResult:
        """Run one turn synchronously.

        Raises:
            pydantic.ValidationError: If price, quality, event or turn number
                are out of range.
        """
        request = TurnRequest(
            price=price,
            quality=quality,
            event=event,
            turn_number=turn_number,
            business_state=business_state,
        )

        async def _run() -> TurnResult:
            try:
                return await self.run_turn_async(request)
            finally:
                await close_oracle_providers()

        return asyncio.run(_run())

    def get_memory_snapshot(self, persona_id: int) -> MemoryState:
        return self.memory.snapshot(persona_id)

    def reset_all(self) -> None:
        self.memory.reset_all()
        logger.info("[ENGINE] All persona memory reset")

    # ── Turn execution ──

    async def run_turn_async(self, request: TurnRequest) -> TurnResult:
        start_time = time.time()
        metadata = TurnMetadata(
            price=request.price,
            quality=request.quality,
            event=request.event,
            oracle=self._oracle_label(),
        )

        if not self.catalog:
            logger.error("[ENGINE] Persona catalog is empty, nothing to simulate")
            return TurnResult(
                success=False,
                turn_number=request.turn_number,
                metadata=metadata,
                error="Persona catalog is empty",
            )

        personas = list(self.catalog)
        self.rng.shuffle(personas)
        batch_size = max(1, self.config.simulation.batch_size)
        batches = [
            personas[i : i + batch_size] for i in range(0, len(personas), batch_size)
        ]

        logger.info(
            f"[TURN {request.turn_number}] ========== STARTING ========== "
            f"price=${request.price:.2f} quality={request.quality:g} "
            f"event={request.event!r} ({len(personas)} personas, {len(batches)} batches)"
        )
        if self.progress is not None:
            self.progress.begin_turn(request.turn_number, len(personas), len(batches))

        # Judged against pre-turn memory; recorded at commit for answered personas
        habits = {
            p.id: self.memory.assess_habit_breakage(p.id, request.price) for p in personas
        }

        semaphore = asyncio.Semaphore(max(1, self.config.simulation.max_concurrent))
        results: list[PersonaResult] = []
        momentum: Momentum | None = None

        for batch_index, batch in enumerate(batches):
            if self.progress is not None:
                self.progress.begin_batch(batch_index)
            batch_start = time.time()

            # Contexts are drawn in batch order so a seeded rng reproduces them
            prepared = [
                self._prepare(persona, request, momentum, habits[persona.id])
                for persona in batch
            ]
            batch_results = await asyncio.gather(
                *(
                    self._evaluate(prep, batch_index, momentum, semaphore)
                    for prep in prepared
                )
            )
            results.extend(batch_results)
            momentum = compute_momentum(results)

            errors = sum(1 for r in batch_results if r.error)
            logger.info(
                f"[BATCH] Turn {request.turn_number} batch {batch_index + 1}/{len(batches)}: "
                f"{len(batch_results)} personas in {time.time() - batch_start:.2f}s"
                + (f" ({errors} failed)" if errors else "")
                + f", leaving={momentum.leaving:.0%} mood={momentum.mood}"
            )

        self._commit(results, request, habits)

        result = self._aggregate(results, momentum or Momentum(), request, metadata)
        result.metadata.batches_processed = len(batches)

        logger.info(
            f"[TURN {request.turn_number}] ========== DONE ========== "
            f"buy={result.summary.buy_count} skip={result.summary.skip_count} "
            f"switch={result.summary.switch_count} errors={result.summary.error_count} "
            f"in {time.time() - start_time:.2f}s"
        )
        return result

    def _prepare(
        self,
        persona: Persona,
        request: TurnRequest,
        momentum: Momentum | None,
        habit: HabitBreakage,
    ) -> tuple[DecisionRequest, float]:
        memory = self.memory.get(persona.id)
        context = generate_context(persona, memory, request.turn_number, self.rng)
        base = effective_sensitivity(persona, context, memory.trust_score)
        adjusted = apply_social_pressure(persona, base, momentum)

        decision_context = self.memory.decision_context(persona.id, request.price)
        if habit.habit_broken:
            decision_context.habit_status.has_routine = False
            decision_context.habit_status.routine_broken_count = habit.routine_broken_count

        decision_request = DecisionRequest(
            persona=persona,
            context=context,
            price=request.price,
            quality=request.quality,
            event=request.event,
            turn_number=request.turn_number,
            decision_context=decision_context,
            effective_sensitivity=adjusted,
            momentum=momentum,
            habit_breakage=habit,
            business_state=request.business_state,
        )
        return decision_request, base

    async def _evaluate(
        self,
        prepared: tuple[DecisionRequest, float],
        batch_index: int,
        momentum: Momentum | None,
        semaphore: asyncio.Semaphore,
    ) -> PersonaResult:
        request, base = prepared
        persona = request.persona

        async with semaphore:
            try:
                raw = await asyncio.wait_for(
                    self.oracle.decide(request), timeout=self.persona_deadline
                )
                decision = parse_decision(raw)
            except asyncio.TimeoutError:
                logger.warning(
                    f"[ENGINE] Persona {persona.id} ({persona.name}) timed out "
                    f"after {self.persona_deadline:g}s"
                )
                decision = _error_decision(
                    f"oracle timed out after {self.persona_deadline:g}s"
                )
            except Exception as e:
                logger.warning(f"[ENGINE] Persona {persona.id} ({persona.name}) failed: {e}")
                decision = _error_decision(str(e) or type(e).__name__)

        if decision.error:
            logger.debug(f"[ENGINE] Persona {persona.id}: {decision.reasoning}")

        if self.progress is not None:
            self.progress.record_persona_done(decision.decision.value, decision.error)

        ctx = request.context
        return PersonaResult(
            persona_id=persona.id,
            persona_name=persona.name,
            archetype=persona.archetype.value,
            decision=decision.decision,
            reasoning=decision.reasoning,
            emotion=decision.emotion,
            price_perception=decision.price_perception,
            context=ResultContext(
                mood=ctx.emotional.current_mood,
                budget_remaining=ctx.financial.budget_remaining,
                is_rushing=ctx.temporal.is_rushing,
                trust=request.decision_context.trust,
            ),
            error=decision.error,
            batch_index=batch_index,
            momentum_seen=momentum.model_copy() if momentum is not None else None,
            base_sensitivity=base,
            effective_sensitivity=request.effective_sensitivity,
        )

    def _commit(
        self,
        results: list[PersonaResult],
        request: TurnRequest,
        habits: dict[int, HabitBreakage],
    ) -> None:
        """Write habit breaks, visits and trust changes for every successful result.

        Failed personas keep their pre-turn memory untouched.
        """
        written = 0
        for r in results:
            if r.error:
                continue
            habit = habits.get(r.persona_id)
            if habit is not None:
                self.memory.apply_habit_breakage(r.persona_id, habit)
            self.memory.record_visit(
                r.persona_id,
                request.turn_number,
                r.decision,
                request.price,
                request.quality,
                r.emotion,
                r.reasoning,
            )
            self.memory.update_trust(
                r.persona_id,
                r.emotion,
                reason=f"{request.event} - {r.decision.value}",
                reasoning=r.reasoning,
            )
            written += 1
        logger.debug(f"[ENGINE] Memory updated for {written}/{len(results)} personas")

    def _aggregate(
        self,
        results: list[PersonaResult],
        momentum: Momentum,
        request: TurnRequest,
        metadata: TurnMetadata,
    ) -> TurnResult:
        all_failed = bool(results) and all(r.error for r in results)
        if all_failed:
            logger.error(f"[TURN {request.turn_number}] Every oracle call failed")

        states = [self.memory.get(p.id) for p in self.catalog]
        return TurnResult(
            success=not all_failed,
            turn_number=request.turn_number,
            results=results,
            summary=compute_turn_summary(results),
            momentum=momentum,
            market_mood=market_mood_label(momentum),
            archetype_breakdown=compute_archetype_breakdown(results),
            emotion_breakdown=compute_emotion_breakdown(results),
            price_perception_breakdown=compute_price_perception_breakdown(results),
            trust_distribution=compute_trust_distribution(results),
            brand_health=compute_brand_health(states),
            metadata=metadata,
            error="All oracle calls failed" if all_failed else None,
        )

    def _oracle_label(self) -> str:
        return getattr(self.oracle, "model", None) or type(self.oracle).__name__


def _error_decision(message: str) -> OracleDecision:
    return OracleDecision(
        decision=Decision.SKIP,
        reasoning=f"Error: {message}",
        emotion="neutral",
        price_perception="unknown",
        error=True,
    )


# =============================================================================
# Convenience entry point
# =============================================================================


def build_engine(
    config: StorefrontConfig | None = None,
    db_path: str | Path | None = None,
    catalog_path: str | Path | None = None,
    oracle: DecisionOracle | None = None,
    progress: TurnProgress | None = None,
) -> MarketEngine:
    """Wire catalog, memory store and oracle from configuration.

    Seeds randomized starting trust when the memory store is empty.
    """
    config = config or get_config()
    catalog = load_catalog(catalog_path or config.defaults.catalog_path or None)
    store = MemoryStore(db_path or config.db_path_resolved, policy=config.policy)

    rng = random.Random(config.simulation.seed)
    if store.seed_population([p.id for p in catalog], rng=rng):
        logger.info(f"[ENGINE] Seeded memory for {len(catalog)} personas")

    return MarketEngine(
        catalog=catalog,
        memory=store,
        oracle=oracle or get_oracle(config),
        config=config,
        rng=rng,
        progress=progress,
    )


def run_turn(
    price: float,
    quality: float,
    event: str,
    turn_number: int = 1,
    business_state: dict[str, Any] | None = None,
    config: StorefrontConfig | None = None,
    db_path: str | Path | None = None,
) -> TurnResult:
    """Run a single turn against the configured population and memory store.

    This is the main entry point for scripted use. A catalog that cannot be
    loaded yields an unsuccessful result rather than an exception.
    """
    try:
        engine = build_engine(config=config, db_path=db_path)
    except CatalogError as e:
        logger.error(f"[ENGINE] Turn {turn_number} aborted: {e}")
        return TurnResult(success=False, turn_number=turn_number, error=str(e))

    try:
        return engine.run_turn(
            price=price,
            quality=quality,
            event=event,
            turn_number=turn_number,
            business_state=business_state,
        )
    finally:
        engine.memory.close()
