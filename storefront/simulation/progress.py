"""Thread-safe turn progress tracking.

Provides a shared state object that the engine updates per persona,
and the CLI display thread reads via snapshot().
"""

import threading
from dataclasses import dataclass, field


@dataclass
class TurnProgress:
    """Thread-safe progress state shared between the engine and display threads.

    The engine calls begin_batch() before each batch and record_persona_done()
    per persona. Decision counts are cumulative across the turn.
    """

    turn_number: int = 0
    batch_index: int = 0
    batches_total: int = 0
    personas_total: int = 0
    personas_done: int = 0
    errors: int = 0
    decision_counts: dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def begin_turn(self, turn_number: int, personas_total: int, batches_total: int) -> None:
        with self._lock:
            self.turn_number = turn_number
            self.personas_total = personas_total
            self.batches_total = batches_total
            self.batch_index = 0
            self.personas_done = 0
            self.errors = 0
            self.decision_counts = {}

    def begin_batch(self, batch_index: int) -> None:
        with self._lock:
            self.batch_index = batch_index

    def record_persona_done(self, decision: str | None, error: bool = False) -> None:
        """Record that a persona has an answer (or a failure) for this turn.

        Args:
            decision: Decision value ("Buy", "Skip", "Switch"), None if unknown
            error: True when the answer was synthesized after an oracle failure
        """
        with self._lock:
            self.personas_done += 1
            if error:
                self.errors += 1
            if decision is not None:
                self.decision_counts[decision] = self.decision_counts.get(decision, 0) + 1

    def snapshot(self) -> dict:
        """Return a thread-safe copy of all display-relevant fields."""
        with self._lock:
            return {
                "turn_number": self.turn_number,
                "batch_index": self.batch_index,
                "batches_total": self.batches_total,
                "personas_total": self.personas_total,
                "personas_done": self.personas_done,
                "errors": self.errors,
                "decision_counts": dict(self.decision_counts),
            }
