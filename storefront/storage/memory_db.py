"""SQLite persistence for persona memory.

One row per persona holding the JSON-serialized MemoryState. The store is
written through on every mutation, so a row always reflects the latest
in-memory state that was successfully flushed.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from ..core.models import MemoryState


def _now_iso() -> str:
    return datetime.now().isoformat()


class MemoryDB:
    """SQLite-backed persona memory store."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._set_pragmas()
        self.init_schema()

    def _set_pragmas(self) -> None:
        cursor = self.conn.cursor()
        cursor.execute("PRAGMA journal_mode = WAL")
        cursor.execute("PRAGMA synchronous = NORMAL")
        self.conn.commit()

    def init_schema(self) -> None:
        cursor = self.conn.cursor()
        cursor.executescript(
            """
            CREATE TABLE IF NOT EXISTS persona_memory (
                persona_id INTEGER PRIMARY KEY,
                state_json TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )
        self.conn.commit()

    @contextmanager
    def transaction(self):
        """Context manager for batching writes into a single SQLite transaction.

        Commits on success, rolls back on exception.
        """
        try:
            yield
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "MemoryDB":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    # ── Persona memory ──

    def _upsert(self, cursor: sqlite3.Cursor, persona_id: int, state: MemoryState) -> None:
        cursor.execute(
            """
            INSERT OR REPLACE INTO persona_memory (persona_id, state_json, updated_at)
            VALUES (?, ?, ?)
            """,
            (persona_id, state.model_dump_json(), _now_iso()),
        )

    def save(self, persona_id: int, state: MemoryState) -> None:
        with self.transaction():
            self._upsert(self.conn.cursor(), persona_id, state)

    def save_all(self, states: dict[int, MemoryState]) -> None:
        with self.transaction():
            cursor = self.conn.cursor()
            for persona_id, state in states.items():
                self._upsert(cursor, persona_id, state)

    def load(self, persona_id: int) -> MemoryState | None:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT state_json FROM persona_memory WHERE persona_id = ?",
            (persona_id,),
        )
        row = cursor.fetchone()
        return MemoryState.model_validate_json(row["state_json"]) if row else None

    def load_all(self) -> dict[int, MemoryState]:
        """Load every stored state.

        Raises:
            ValueError: If any stored row fails to parse (pydantic
                ValidationError is a ValueError).
        """
        cursor = self.conn.cursor()
        cursor.execute("SELECT persona_id, state_json FROM persona_memory")
        return {
            int(row["persona_id"]): MemoryState.model_validate_json(row["state_json"])
            for row in cursor.fetchall()
        }

    def clear(self) -> None:
        with self.transaction():
            self.conn.execute("DELETE FROM persona_memory")


def open_memory_db(path: Path | str) -> MemoryDB:
    """Open the memory database and ensure schema exists."""
    return MemoryDB(path)
