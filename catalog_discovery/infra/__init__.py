"""Infra layer: the external catalog store client."""

from .catalog_store import CatalogStore

__all__ = ["CatalogStore"]
