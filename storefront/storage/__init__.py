"""Storage layer for persona memory."""

from .memory_db import MemoryDB, open_memory_db

__all__ = [
    "MemoryDB",
    "open_memory_db",
]
