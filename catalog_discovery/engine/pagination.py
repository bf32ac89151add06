"""Shared page-loop termination contract for source adapters.

Every adapter that walks a paged listing drives its fetches through
:class:`PaginationController`. The loop stops on the first of:

* a page that yields no items (end of listing);
* a page after the first that adds no new unique item, even if the site
  claims there is more (pagination links that loop back to page 1);
* an explicit ``has_more=False`` from the adapter;
* the hard ``max_pages`` ceiling, for pagination markup that was misparsed
  and would otherwise never stop.

Any single signal can be wrong for a given site; the loop only runs away if
all of them are wrong at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Sequence

import structlog

from ..errors import CanonicalizationError
from .canonical import canonicalize
from .items import Candidate


class StopReason(str, Enum):
    EMPTY_PAGE = "empty_page"
    NO_NEW_ITEMS = "no_new_items"
    NO_MORE_PAGES = "no_more_pages"
    MAX_PAGES = "max_pages"


@dataclass(slots=True)
class Page:
    """Items found on one listing page plus the site's own "more pages" signal.

    ``has_more`` is ``None`` when the site exposes no such signal.
    """

    items: Sequence[Candidate]
    has_more: bool | None = None


@dataclass(slots=True)
class PaginationResult:
    items: list[Candidate] = field(default_factory=list)
    pages_fetched: int = 0
    stop_reason: StopReason = StopReason.MAX_PAGES


class PaginationController:
    """Drive ``fetch_page(page_number)`` from page 1 until a stop signal fires."""

    def __init__(
        self,
        max_pages: int,
        key: Callable[[str], str] = canonicalize,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        if max_pages < 1:
            raise ValueError("max_pages must be >= 1")
        self.max_pages = max_pages
        self.key = key
        self.logger = logger or structlog.get_logger("catalog_discovery.pagination")

    def run(self, fetch_page: Callable[[int], Page]) -> PaginationResult:
        result = PaginationResult()
        seen: set[str] = set()
        for page_number in range(1, self.max_pages + 1):
            page = fetch_page(page_number)
            result.pages_fetched = page_number
            if not page.items:
                result.stop_reason = StopReason.EMPTY_PAGE
                break

            new_on_page = 0
            for candidate in page.items:
                identity = self._identity(candidate)
                if identity in seen:
                    continue
                seen.add(identity)
                result.items.append(candidate)
                new_on_page += 1
            self.logger.debug(
                "page_fetched",
                page=page_number,
                links=len(page.items),
                new_unique=new_on_page,
                has_more=page.has_more,
            )

            if page_number > 1 and new_on_page == 0:
                result.stop_reason = StopReason.NO_NEW_ITEMS
                break
            if page.has_more is False:
                result.stop_reason = StopReason.NO_MORE_PAGES
                break
        else:
            result.stop_reason = StopReason.MAX_PAGES
            self.logger.warning("pagination_ceiling_reached", max_pages=self.max_pages)
        return result

    def _identity(self, candidate: Candidate) -> str:
        try:
            return self.key(candidate.url)
        except CanonicalizationError:
            # left for the deduplicator to reject and report
            return candidate.url.strip()


__all__ = ["Page", "PaginationController", "PaginationResult", "StopReason"]
