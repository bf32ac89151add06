"""Source descriptors and the built-in listing discoverer."""

from .descriptor import DiscoverFn, SourceDescriptor
from .listing import ListingDiscoverer, parse_listing
from .registry import build_descriptor, build_descriptors, resolve_callable

__all__ = [
    "DiscoverFn",
    "ListingDiscoverer",
    "SourceDescriptor",
    "build_descriptor",
    "build_descriptors",
    "parse_listing",
    "resolve_callable",
]
