"""Command-line interface for Storefront."""

from .app import app

__all__ = ["app"]
