from __future__ import annotations

import pytest

from catalog_discovery.config import ListingConfig
from catalog_discovery.errors import AdapterError
from catalog_discovery.sources import ListingDiscoverer, parse_listing
from catalog_discovery.sources.listing import UNNAMED

LISTING_HTML = """
<html><body>
  <a class="product" href="/products/minnow-110/"><span class="name">Minnow 110
  NEW COLOR</span></a>
  <a class="product" href="https://maker.example.com/products/pencil-90">Pencil 90</a>
  <a class="product" href="/products/shad"><img src="shad.jpg" alt="Shad 60"></a>
  <a class="product" href="/products/blank"></a>
  <a class="product" href="javascript:void(0)">Broken</a>
  <a class="product" href="#top">Top</a>
  <a class="product" href="/news/campaign">Campaign</a>
  <a class="next" href="?page=2">Next</a>
</body></html>
"""


class FakeContext:
    def __init__(self, pages: dict[str, str], failing: set[str] | None = None) -> None:
        self.pages = pages
        self.failing = failing or set()
        self.rendered: list[str] = []
        self.fetched: list[str] = []

    def render(self, url: str, wait_selector: str | None = None) -> str:
        self.rendered.append(url)
        return self._get(url)

    def fetch_html(self, url: str) -> str:
        self.fetched.append(url)
        return self._get(url)

    def _get(self, url: str) -> str:
        if url in self.failing:
            raise AdapterError(f"HTTP fetch failed for {url}")
        return self.pages.get(url, "<html></html>")


def _listing(**overrides) -> ListingConfig:
    base = {
        "start_url": "https://maker.example.com/products/",
        "item_selector": "a.product",
        "name_selector": ".name",
        "url_contains": "/products/",
        "next_page_selector": "a.next",
    }
    base.update(overrides)
    return ListingConfig(**base)


def test_parse_listing_extracts_candidates() -> None:
    page = parse_listing(LISTING_HTML, "https://maker.example.com/products/", _listing())
    assert [(c.url, c.name) for c in page.items] == [
        ("https://maker.example.com/products/minnow-110/", "Minnow 110"),
        ("https://maker.example.com/products/pencil-90", "Pencil 90"),
        ("https://maker.example.com/products/shad", "Shad 60"),
        ("https://maker.example.com/products/blank", UNNAMED),
    ]
    assert page.has_more is True


def test_parse_listing_without_next_selector_has_no_signal() -> None:
    page = parse_listing(LISTING_HTML, "https://maker.example.com/", _listing(next_page_selector=None))
    assert page.has_more is None


def test_name_truncated_to_limit() -> None:
    html = f'<a class="product" href="/products/long">{"X" * 250}</a>'
    page = parse_listing(html, "https://maker.example.com/", _listing())
    assert len(page.items[0].name) == 100


def test_discoverer_walks_numbered_pages() -> None:
    listing = _listing(page_url_template="{url}?page={page}", max_pages=5, render=False)
    page_two = '<a class="product" href="/products/crank-50">Crank 50</a>'
    ctx = FakeContext(
        {
            "https://maker.example.com/products/": LISTING_HTML,
            "https://maker.example.com/products/?page=2": page_two,
        }
    )
    items = ListingDiscoverer(listing)(ctx)
    assert ctx.fetched == [
        "https://maker.example.com/products/",
        "https://maker.example.com/products/?page=2",
    ]
    assert items[-1].name == "Crank 50"
    assert len(items) == 5


def test_discoverer_without_template_fetches_one_page() -> None:
    ctx = FakeContext({"https://maker.example.com/products/": LISTING_HTML})
    items = ListingDiscoverer(_listing(max_pages=10))(ctx)
    assert ctx.rendered == ["https://maker.example.com/products/"]
    assert len(items) == 4


def test_discoverer_crawls_each_category() -> None:
    listing = _listing(
        start_url="https://maker.example.com/",
        category_paths=["/bass/", "/salt/"],
        next_page_selector=None,
    )
    ctx = FakeContext(
        {
            "https://maker.example.com/bass/": '<a class="product" href="/products/a">A</a>',
            "https://maker.example.com/salt/": '<a class="product" href="/products/b">B</a>',
        }
    )
    items = ListingDiscoverer(listing)(ctx)
    assert [item.name for item in items] == ["A", "B"]


def test_failed_category_is_skipped() -> None:
    listing = _listing(start_url="https://maker.example.com/", category_paths=["/bass/", "/salt/"])
    ctx = FakeContext(
        {"https://maker.example.com/salt/": '<a class="product" href="/products/b">B</a>'},
        failing={"https://maker.example.com/bass/"},
    )
    items = ListingDiscoverer(listing)(ctx)
    assert [item.name for item in items] == ["B"]


def test_all_categories_failing_fails_the_source() -> None:
    listing = _listing(start_url="https://maker.example.com/", category_paths=["/bass/", "/salt/"])
    ctx = FakeContext({}, failing={"https://maker.example.com/bass/", "https://maker.example.com/salt/"})
    with pytest.raises(AdapterError):
        ListingDiscoverer(listing)(ctx)


def test_single_category_failure_propagates() -> None:
    ctx = FakeContext({}, failing={"https://maker.example.com/products/"})
    with pytest.raises(AdapterError):
        ListingDiscoverer(_listing())(ctx)
