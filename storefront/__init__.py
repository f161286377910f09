"""Storefront: persona memory and market-dynamics simulation.

Simulates how a population of synthetic consumers reacts, turn by turn,
to a small business's price, quality and event decisions.
"""

__version__ = "0.3.0"
