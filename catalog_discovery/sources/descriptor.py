"""Immutable per-source configuration: rules plus one discover function."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable

from ..engine.canonical import Canonicalizer
from ..engine.filters import FilterPipeline
from ..engine.items import Candidate

if TYPE_CHECKING:
    from ..engine.context import ExecutionContext

DiscoverFn = Callable[["ExecutionContext"], Iterable[Candidate]]


@dataclass(frozen=True, slots=True)
class SourceDescriptor:
    source_id: str
    discover: DiscoverFn
    name_keyword_excludes: tuple[str, ...] = ()
    url_slug_excludes: tuple[str, ...] = ()
    requires_privileged_context: bool = False
    canonicalizer: Canonicalizer = field(default_factory=Canonicalizer)
    display_name: str | None = None

    @property
    def label(self) -> str:
        return self.display_name or self.source_id

    def filter_pipeline(self) -> FilterPipeline:
        return FilterPipeline(self.name_keyword_excludes, self.url_slug_excludes)


__all__ = ["DiscoverFn", "SourceDescriptor"]
