"""Turn validated source configuration into source descriptors."""

from __future__ import annotations

import importlib
from functools import partial
from typing import Callable, Iterable, Mapping

from ..config import SourceConfig
from ..engine.canonical import Canonicalizer
from .descriptor import DiscoverFn, SourceDescriptor
from .listing import ListingDiscoverer


def resolve_callable(path: str) -> Callable:
    """Import ``package.module:function``."""

    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Invalid discoverer path: {path!r}")
    module = importlib.import_module(module_name)
    try:
        target = getattr(module, attr)
    except AttributeError as exc:
        raise ValueError(f"{module_name} has no attribute {attr!r}") from exc
    if not callable(target):
        raise ValueError(f"Discoverer {path!r} is not callable")
    return target


def build_descriptor(
    source: SourceConfig, host_aliases: Mapping[str, str] | None = None
) -> SourceDescriptor:
    canonicalizer = Canonicalizer(dict(host_aliases or {}), source.canonical_id_param)
    discover: DiscoverFn
    if source.discoverer == "listing":
        discover = ListingDiscoverer(source.listing, key=canonicalizer)  # type: ignore[arg-type]
    else:
        discover = partial(resolve_callable(source.discoverer), source=source)
    return SourceDescriptor(
        source_id=source.source_id,
        discover=discover,
        name_keyword_excludes=tuple(source.name_keyword_excludes),
        url_slug_excludes=tuple(source.url_slug_excludes),
        requires_privileged_context=source.requires_privileged_context,
        canonicalizer=canonicalizer,
        display_name=source.display_name,
    )


def build_descriptors(
    sources: Iterable[SourceConfig], host_aliases: Mapping[str, str] | None = None
) -> list[SourceDescriptor]:
    return [build_descriptor(source, host_aliases) for source in sources]


__all__ = ["build_descriptor", "build_descriptors", "resolve_callable"]
