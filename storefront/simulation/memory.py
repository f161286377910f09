"""Persona memory store.

Owns every persona's MemoryState and is the only code that mutates it.
Callers read through ``get``/``snapshot``/``decision_context`` and receive
copies. Mutations are written through to SQLite when a database path is
given; persistence failures are logged and the in-memory state stays
authoritative.
"""

import logging
import random
import sqlite3
import threading
from pathlib import Path
from typing import Iterable

from ..config import MemoryPolicy
from ..core.models import (
    Decision,
    DecisionContext,
    FrustrationStatus,
    HabitBreakage,
    HabitStatus,
    MemoryState,
    NEGATIVE_EMOTIONS,
    POSITIVE_EMOTIONS,
    PeakExperience,
    PricePerception,
    Visit,
)
from ..storage import MemoryDB


logger = logging.getLogger(__name__)


class MemoryStore:
    """Durable per-persona memory with write-through persistence.

    Args:
        db_path: SQLite file to load from and write to. None keeps the
            store purely in memory (tests, dry runs).
        policy: Thresholds and trust deltas. Defaults to MemoryPolicy().
    """

    def __init__(
        self,
        db_path: Path | str | None = None,
        policy: MemoryPolicy | None = None,
    ):
        self.policy = policy or MemoryPolicy()
        self._states: dict[int, MemoryState] = {}
        self._lock = threading.Lock()
        self._db: MemoryDB | None = None
        if db_path:
            self._open(db_path)

    def _open(self, db_path: Path | str) -> None:
        try:
            self._db = MemoryDB(db_path)
        except sqlite3.Error as e:
            logger.warning(
                f"[MEMORY] Cannot open memory store {db_path}: {e}. "
                f"Running in memory only"
            )
            self._db = None
            return

        try:
            self._states = self._db.load_all()
            logger.info(f"[MEMORY] Loaded {len(self._states)} personas from {db_path}")
        except (sqlite3.DatabaseError, ValueError) as e:
            logger.warning(
                f"[MEMORY] Memory store {db_path} is unreadable ({e}). "
                f"Starting from a fresh population"
            )
            self._states = {}

    def close(self) -> None:
        if self._db is not None:
            self._db.close()
            self._db = None

    # ── Persistence ──

    def _persist(self, persona_id: int) -> None:
        """Write one persona through to the database. Caller holds the lock."""
        if self._db is None:
            return
        try:
            self._db.save(persona_id, self._states[persona_id])
        except sqlite3.Error as e:
            logger.warning(f"[MEMORY] Failed to persist persona {persona_id}: {e}")

    def _persist_all(self) -> None:
        if self._db is None:
            return
        try:
            self._db.save_all(self._states)
        except sqlite3.Error as e:
            logger.warning(f"[MEMORY] Failed to persist memory store: {e}")

    # ── Lifecycle ──

    def _state(self, persona_id: int) -> MemoryState:
        state = self._states.get(persona_id)
        if state is None:
            state = MemoryState()
            self._states[persona_id] = state
        return state

    def seed_population(
        self,
        persona_ids: Iterable[int],
        rng: random.Random | None = None,
    ) -> bool:
        """Create randomized-trust states for a fresh population.

        Only acts when the store is empty. Returns True if it seeded.
        """
        rng = rng or random.Random()
        with self._lock:
            if self._states:
                return False
            for persona_id in persona_ids:
                self._states[persona_id] = MemoryState(
                    trust_score=rng.randint(
                        self.policy.seed_trust_min, self.policy.seed_trust_max
                    )
                )
            self._persist_all()
            logger.info(f"[MEMORY] Seeded {len(self._states)} personas")
            return True

    def reset_all(self) -> None:
        """Forget everything. Every persona returns to default state (trust 100)."""
        with self._lock:
            self._states = {}
            if self._db is not None:
                try:
                    self._db.clear()
                except sqlite3.Error as e:
                    logger.warning(f"[MEMORY] Failed to clear memory store: {e}")
        logger.info("[MEMORY] All persona memory reset")

    # ── Reads ──

    def get(self, persona_id: int) -> MemoryState:
        """Return a copy of the persona's state, creating a default one if new."""
        with self._lock:
            return self._state(persona_id).model_copy(deep=True)

    def snapshot(self, persona_id: int) -> MemoryState:
        return self.get(persona_id)

    def all_states(self) -> dict[int, MemoryState]:
        with self._lock:
            return {
                pid: state.model_copy(deep=True) for pid, state in self._states.items()
            }

    def persona_ids(self) -> list[int]:
        with self._lock:
            return sorted(self._states)

    # ── Visit recording ──

    def record_visit(
        self,
        persona_id: int,
        turn_number: int,
        decision: Decision | str,
        price: float,
        quality: float,
        emotion: str,
        reasoning: str = "",
    ) -> MemoryState:
        """Append a visit and advance counters, anchors and the experience state machine."""
        decision = Decision(decision)
        policy = self.policy

        with self._lock:
            state = self._state(persona_id)

            state.visit_history.append(
                Visit(
                    turn=turn_number,
                    decision=decision,
                    price=price,
                    quality=quality,
                    emotion=emotion,
                    reasoning=reasoning,
                )
            )
            if len(state.visit_history) > policy.history_size:
                state.visit_history = state.visit_history[-policy.history_size :]

            stats = state.lifetime_stats
            stats.total_visits += 1
            if decision == Decision.BUY:
                stats.total_buys += 1
                stats.total_spent += price
            elif decision == Decision.SKIP:
                stats.total_skips += 1
            elif decision == Decision.SWITCH:
                stats.total_switches += 1
                state.competitor_knowledge.discovered_competitor = True
                state.competitor_knowledge.last_switch_turn = turn_number

            anchors = state.price_anchoring
            if anchors.initial_price is None:
                anchors.initial_price = price
            if decision == Decision.BUY:
                anchors.last_price_paid = price
            if anchors.lowest_price_seen is None or price < anchors.lowest_price_seen:
                anchors.lowest_price_seen = price
            if anchors.highest_price_seen is None or price > anchors.highest_price_seen:
                anchors.highest_price_seen = price

            self._advance_experience(
                state, persona_id, turn_number, decision, price, quality, emotion
            )

            self._persist(persona_id)
            return state.model_copy(deep=True)

    def _advance_experience(
        self,
        state: MemoryState,
        persona_id: int,
        turn_number: int,
        decision: Decision,
        price: float,
        quality: float,
        emotion: str,
    ) -> None:
        policy = self.policy
        exp = state.experience_tracking
        flags = state.flags
        stats = state.lifetime_stats

        if emotion in NEGATIVE_EMOTIONS:
            exp.consecutive_frustrations += 1
            exp.consecutive_buys = 0
            stats.times_disappointed += 1

            if exp.consecutive_frustrations >= policy.gone_after:
                if not flags.is_permanently_gone:
                    logger.info(
                        f"[MEMORY] Persona {persona_id} is permanently gone "
                        f"after {exp.consecutive_frustrations} bad visits"
                    )
                flags.is_permanently_gone = True
            elif (
                exp.consecutive_frustrations == policy.last_chance_after
                and not flags.is_on_last_chance
            ):
                flags.is_on_last_chance = True
                flags.last_chance_given_turn = turn_number
                logger.info(f"[MEMORY] Persona {persona_id} is on last chance")

        elif emotion in POSITIVE_EMOTIONS:
            exp.consecutive_frustrations = 0
            stats.times_delighted += 1
            flags.is_on_last_chance = False
            if decision == Decision.BUY:
                exp.consecutive_buys += 1
                if exp.consecutive_buys >= policy.routine_after:
                    exp.has_routine = True

            if quality >= policy.peak_quality and (
                exp.peak_experience is None or quality > exp.peak_experience.quality
            ):
                exp.peak_experience = PeakExperience(
                    turn=turn_number, quality=quality, price=price, emotion=emotion
                )

        else:
            exp.consecutive_frustrations = 0

    # ── Trust ──

    def update_trust(
        self,
        persona_id: int,
        emotion: str,
        reason: str = "",
        reasoning: str | None = None,
    ) -> int:
        """Apply the emotion's trust delta and return the new trust score.

        Positive deltas are floor-divided by ``policy.recovery_divisor``;
        trust is lost faster than it is regained. Unknown emotions move nothing.
        """
        delta = self.policy.trust_deltas.get(emotion, 0)
        if delta > 0:
            delta = delta // self.policy.recovery_divisor

        with self._lock:
            state = self._state(persona_id)
            old = state.trust_score
            state.trust_score = max(0, min(100, old + delta))
            self._persist(persona_id)
            new = state.trust_score

        logger.info(
            f"[MEMORY] Persona {persona_id}: {emotion} → Trust {old} → {new} ({reason})"
        )
        if reasoning:
            logger.debug(f"[MEMORY] Persona {persona_id} reasoning: {reasoning}")
        return new

    # ── Price perception ──

    def _perceive(self, state: MemoryState, current_price: float) -> PricePerception:
        policy = self.policy
        anchors = state.price_anchoring
        initial = anchors.initial_price
        if initial is None:
            return PricePerception(perception="unknown", magnitude=0.0, anchor="none")

        vs_initial = current_price - initial
        vs_last = current_price - anchors.last_price_paid if anchors.last_price_paid else 0.0
        vs_lowest = (
            current_price - anchors.lowest_price_seen if anchors.lowest_price_seen else 0.0
        )

        weighted = vs_initial * (policy.loss_aversion if vs_initial > 0 else 1.0)

        if abs(weighted) < initial * policy.fair_band:
            perception = "fair"
        elif weighted > initial * policy.outrageous_threshold:
            perception = "outrageous"
        elif weighted > 0:
            perception = "expensive"
        elif weighted < -initial * policy.cheap_threshold:
            perception = "cheap"
        else:
            perception = "fair"

        return PricePerception(
            perception=perception,
            magnitude=abs(weighted),
            vs_initial=vs_initial,
            vs_last=vs_last,
            vs_lowest=vs_lowest,
            anchor="initial",
        )

    def price_perception(self, persona_id: int, current_price: float) -> PricePerception:
        """Classify the current price against the persona's first-seen price.

        Increases over the anchor are weighted by ``policy.loss_aversion``.
        """
        with self._lock:
            return self._perceive(self._state(persona_id), current_price)

    def assess_habit_breakage(self, persona_id: int, current_price: float) -> HabitBreakage:
        """Would this price break the persona's routine? Read-only.

        A routine breaks when the price feels expensive or outrageous. The
        returned ``routine_broken_count`` is the count after the break.
        """
        with self._lock:
            state = self._state(persona_id)
            exp = state.experience_tracking
            if not exp.has_routine:
                return HabitBreakage(routine_broken_count=exp.routine_broken_count)
            perception = self._perceive(state, current_price).perception
            if perception not in ("expensive", "outrageous"):
                return HabitBreakage(routine_broken_count=exp.routine_broken_count)
            return HabitBreakage(
                habit_broken=True,
                routine_broken_count=exp.routine_broken_count + 1,
                extra_frustration=self.policy.habit_break_frustration,
            )

    def apply_habit_breakage(self, persona_id: int, breakage: HabitBreakage) -> None:
        """Record a break previously assessed by ``assess_habit_breakage``."""
        if not breakage.habit_broken:
            return
        with self._lock:
            exp = self._state(persona_id).experience_tracking
            if not exp.has_routine:
                return
            exp.has_routine = False
            exp.routine_broken_count += 1
            self._persist(persona_id)
            count = exp.routine_broken_count
        logger.info(f"[MEMORY] Persona {persona_id} routine broken (count={count})")

    def check_habit_breakage(self, persona_id: int, current_price: float) -> HabitBreakage:
        """Break an established routine when the price now feels expensive or worse."""
        breakage = self.assess_habit_breakage(persona_id, current_price)
        self.apply_habit_breakage(persona_id, breakage)
        return breakage

    # ── Decision context ──

    def decision_context(self, persona_id: int, current_price: float) -> DecisionContext:
        with self._lock:
            state = self._state(persona_id)
            exp = state.experience_tracking
            return DecisionContext(
                trust=state.trust_score,
                visit_history=[
                    v.model_copy() for v in state.visit_history[-self.policy.recent_visits :]
                ],
                price_perception=self._perceive(state, current_price),
                habit_status=HabitStatus(
                    has_routine=exp.has_routine,
                    consecutive_buys=exp.consecutive_buys,
                    routine_broken_count=exp.routine_broken_count,
                ),
                frustration_status=FrustrationStatus(
                    consecutive_frustrations=exp.consecutive_frustrations,
                    is_on_last_chance=state.flags.is_on_last_chance,
                    is_permanently_gone=state.flags.is_permanently_gone,
                ),
                peak_experience=(
                    exp.peak_experience.model_copy() if exp.peak_experience else None
                ),
                competitor_knowledge=state.competitor_knowledge.model_copy(),
                lifetime_stats=state.lifetime_stats.model_copy(),
            )
