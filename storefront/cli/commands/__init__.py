"""CLI commands for Storefront."""

from . import (
    simulate,
    memory,
    personas,
    reset,
    config_cmd,
)

__all__ = [
    "simulate",
    "memory",
    "personas",
    "reset",
    "config_cmd",
]
