"""Generic listing-page discoverer driven by CSS selectors."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable
from urllib.parse import urljoin

import structlog
from selectolax.parser import HTMLParser, Node

from ..config import ListingConfig
from ..engine.canonical import canonicalize
from ..engine.items import Candidate
from ..engine.pagination import Page, PaginationController
from ..errors import AdapterError

if TYPE_CHECKING:
    from ..engine.context import ExecutionContext

UNNAMED = "(name unavailable)"
MAX_NAME_LENGTH = 100


def _clean_name(text: str | None) -> str:
    if not text:
        return ""
    first_line = text.strip().split("\n")[0].strip()
    return first_line[:MAX_NAME_LENGTH]


def _node_name(node: Node, name_selector: str | None) -> str:
    name = ""
    if name_selector:
        name_node = node.css_first(name_selector)
        if name_node is not None:
            name = _clean_name(name_node.text(separator="\n"))
    if not name:
        name = _clean_name(node.text(separator="\n"))
    if not name:
        img = node.css_first("img")
        if img is not None:
            name = _clean_name(img.attributes.get("alt"))
    return name or UNNAMED


def parse_listing(html: str, base_url: str, listing: ListingConfig) -> Page:
    """Extract product links from one listing page."""

    parser = HTMLParser(html)
    items: list[Candidate] = []
    for node in parser.css(listing.item_selector):
        href = node.attributes.get("href")
        if not href:
            continue
        href = href.strip()
        if not href or href.startswith(("javascript:", "#")):
            continue
        full_url = urljoin(base_url, href)
        if listing.url_contains and listing.url_contains not in full_url:
            continue
        items.append(Candidate(url=full_url, name=_node_name(node, listing.name_selector)))

    has_more: bool | None = None
    if listing.next_page_selector:
        has_more = parser.css_first(listing.next_page_selector) is not None
    return Page(items=items, has_more=has_more)


class ListingDiscoverer:
    """Walk each category listing and its numbered pages under the pagination contract.

    Without ``category_paths`` the only category is ``start_url``. With several
    categories a failing one is logged and skipped; the source fails only when
    every category fails.
    """

    def __init__(
        self,
        listing: ListingConfig,
        key: Callable[[str], str] = canonicalize,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.listing = listing
        self.key = key
        self.logger = logger or structlog.get_logger("catalog_discovery.sources.listing")

    def category_urls(self) -> list[str]:
        if not self.listing.category_paths:
            return [self.listing.start_url]
        return [urljoin(self.listing.start_url, path) for path in self.listing.category_paths]

    def page_url(self, page_number: int, category_url: str | None = None) -> str:
        category_url = category_url or self.listing.start_url
        if page_number == 1 or not self.listing.page_url_template:
            return category_url
        return self.listing.page_url_template.format(url=category_url, page=page_number)

    def __call__(self, ctx: "ExecutionContext") -> list[Candidate]:
        categories = self.category_urls()
        items: list[Candidate] = []
        failures = 0
        for category_url in categories:
            try:
                items.extend(self._crawl_category(ctx, category_url))
            except AdapterError as exc:
                if len(categories) == 1:
                    raise
                failures += 1
                self.logger.warning("listing_category_failed", url=category_url, error=str(exc))
        if failures and failures == len(categories):
            raise AdapterError(f"All {failures} listing categories failed")
        return items

    def _crawl_category(self, ctx: "ExecutionContext", category_url: str) -> list[Candidate]:
        # without a page template there is only the first page
        max_pages = self.listing.max_pages if self.listing.page_url_template else 1
        controller = PaginationController(max_pages, key=self.key, logger=self.logger)

        def fetch_page(page_number: int) -> Page:
            url = self.page_url(page_number, category_url)
            if self.listing.render:
                html = ctx.render(url, wait_selector=self.listing.wait_selector)
            else:
                html = ctx.fetch_html(url)
            return parse_listing(html, url, self.listing)

        result = controller.run(fetch_page)
        self.logger.info(
            "listing_crawled",
            url=category_url,
            pages=result.pages_fetched,
            stop_reason=result.stop_reason.value,
            items=len(result.items),
        )
        return result.items


__all__ = ["ListingDiscoverer", "UNNAMED", "parse_listing"]
