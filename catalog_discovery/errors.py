"""Error taxonomy shared by the discovery engine.

Each error carries the scope it is handled at: a single candidate, a single
source, a single registration, or the whole run.
"""

from __future__ import annotations


class DiscoveryError(Exception):
    """Base class for all catalog-discovery errors."""


class CanonicalizationError(DiscoveryError, ValueError):
    """A raw URL could not be mapped to a canonical identity."""

    def __init__(self, raw_url: str, reason: str) -> None:
        super().__init__(f"Cannot canonicalize {raw_url!r}: {reason}")
        self.raw_url = raw_url
        self.reason = reason


class AdapterError(DiscoveryError):
    """A source failed to produce candidates."""


class ExecutionContextError(AdapterError):
    """An execution context could not be created or torn down."""


class RegistrationError(DiscoveryError):
    """A single record could not be created in the catalog store."""


class CatalogLoadError(DiscoveryError):
    """The known-catalog snapshot could not be loaded. Fatal for the run."""


class MissingCredentialsError(DiscoveryError):
    """The catalog store token is not set in the environment."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"Missing required environment variable: {env_name}")
        self.env_name = env_name


class UnknownSourceError(DiscoveryError):
    """A source id was requested that is not configured."""

    def __init__(self, source_id: str, available: list[str]) -> None:
        listing = ", ".join(available) if available else "(none)"
        super().__init__(f"Unknown source: {source_id}. Available: {listing}")
        self.source_id = source_id
        self.available = available


__all__ = [
    "AdapterError",
    "CanonicalizationError",
    "CatalogLoadError",
    "DiscoveryError",
    "ExecutionContextError",
    "MissingCredentialsError",
    "RegistrationError",
    "UnknownSourceError",
]
