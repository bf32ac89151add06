"""Discover new products on manufacturer sites and register them in a catalog store."""

__version__ = "0.1.0"
