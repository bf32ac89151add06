"""Per-source exclusion rules applied to newly discovered items."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping
from urllib.parse import urlsplit


class ExclusionRule(str, Enum):
    NAME_KEYWORD = "name_keyword"
    URL_SLUG = "url_slug"
    DUPLICATE_IN_RUN = "duplicate_in_run"


@dataclass(frozen=True, slots=True)
class Exclusion:
    canonical_url: str
    name: str
    rule: ExclusionRule
    matched: str

    @property
    def reason(self) -> str:
        return f"{self.rule.value}:{self.matched}"


@dataclass(slots=True)
class FilterResult:
    accepted: dict[str, str] = field(default_factory=dict)
    excluded: list[Exclusion] = field(default_factory=list)


class FilterPipeline:
    """Name-keyword then URL-slug exclusion, first match wins.

    Matching is deliberately loose: keywords are case-insensitive substrings
    of the display name (``"HOOK"`` also excludes ``"Hookless Lure"``) and
    slugs are prefixes of any path segment of the canonical URL.
    """

    def __init__(
        self,
        name_keyword_excludes: Iterable[str] = (),
        url_slug_excludes: Iterable[str] = (),
    ) -> None:
        self.name_keyword_excludes = tuple(kw for kw in name_keyword_excludes if kw)
        self.url_slug_excludes = tuple(slug for slug in url_slug_excludes if slug)
        self._folded_keywords = tuple(kw.casefold() for kw in self.name_keyword_excludes)

    def match(self, canonical_url: str, name: str) -> Exclusion | None:
        folded_name = name.casefold()
        for keyword, folded in zip(self.name_keyword_excludes, self._folded_keywords):
            if folded in folded_name:
                return Exclusion(canonical_url, name, ExclusionRule.NAME_KEYWORD, keyword)
        if self.url_slug_excludes:
            segments = [seg for seg in urlsplit(canonical_url).path.split("/") if seg]
            for slug in self.url_slug_excludes:
                if any(segment.startswith(slug) for segment in segments):
                    return Exclusion(canonical_url, name, ExclusionRule.URL_SLUG, slug)
        return None

    def apply(self, items: Mapping[str, str]) -> FilterResult:
        result = FilterResult()
        for canonical_url, name in items.items():
            exclusion = self.match(canonical_url, name)
            if exclusion is None:
                result.accepted[canonical_url] = name
            else:
                result.excluded.append(exclusion)
        return result


def filter_items(items: Mapping[str, str], rules: FilterPipeline) -> FilterResult:
    return rules.apply(items)


__all__ = ["Exclusion", "ExclusionRule", "FilterPipeline", "FilterResult", "filter_items"]
