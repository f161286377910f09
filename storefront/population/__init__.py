"""Persona catalog for Storefront."""

from .catalog import (
    CatalogError,
    builtin_catalog,
    get_persona,
    load_catalog,
    save_catalog,
)

__all__ = [
    "CatalogError",
    "builtin_catalog",
    "get_persona",
    "load_catalog",
    "save_catalog",
]
