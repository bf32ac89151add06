"""Execution contexts: the browser/HTTP client identity a source runs under."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Iterator

import httpx
import structlog

from ..config import BrowserSettings
from ..errors import AdapterError, ExecutionContextError
from .rate_limit import RateLimiter

if TYPE_CHECKING:
    from ..sources.descriptor import SourceDescriptor


class BrowserSession:
    """One Playwright browser, context and page launched from :class:`BrowserSettings`."""

    def __init__(self, settings: BrowserSettings) -> None:
        self.settings = settings
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    def start(self) -> None:
        if self._playwright is not None:
            return
        try:
            from playwright.sync_api import sync_playwright
        except ImportError as exc:  # pragma: no cover
            raise RuntimeError(
                "Browser contexts require installing the 'playwright' package."
            ) from exc

        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(headless=self.settings.headless)
        context_kwargs: dict[str, Any] = {
            "viewport": {
                "width": self.settings.viewport_size[0],
                "height": self.settings.viewport_size[1],
            },
        }
        if self.settings.user_agent:
            context_kwargs["user_agent"] = self.settings.user_agent
        if self.settings.locale:
            context_kwargs["locale"] = self.settings.locale
        self._context = self._browser.new_context(**context_kwargs)
        self._page = self._context.new_page()
        self._page.set_default_navigation_timeout(self.settings.navigation_timeout_ms)

    @property
    def page(self):
        if self._page is None:
            raise RuntimeError("Browser session has not been started")
        return self._page

    def render(self, url: str, wait_selector: str | None = None) -> str:
        from playwright.sync_api import Error as PlaywrightError

        timeout_ms = self.settings.navigation_timeout_ms
        try:
            self.page.goto(url, wait_until=self.settings.wait_until, timeout=timeout_ms)
            if wait_selector:
                self.page.wait_for_selector(wait_selector, timeout=timeout_ms)
            return self.page.content()
        except PlaywrightError as exc:
            raise AdapterError(f"Browser navigation failed for {url}: {exc}") from exc

    def close(self) -> None:
        if self._page is not None:
            self._page.close()
            self._page = None
        if self._context is not None:
            self._context.close()
            self._context = None
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None


class ExecutionContext:
    """Page-retrieval capability handed to a source's ``discover`` function.

    ``render`` returns the rendered DOM, ``fetch_html`` the raw response body
    and ``page`` exposes the live browser page for adapters that query the
    DOM directly (they should call :meth:`pause` between navigations).
    """

    def __init__(
        self,
        session: BrowserSession,
        http_client: httpx.Client,
        rate_limiter: RateLimiter,
        *,
        privileged: bool = False,
    ) -> None:
        self.session = session
        self.http_client = http_client
        self.rate_limiter = rate_limiter
        self.privileged = privileged

    @property
    def page(self):
        return self.session.page

    def pause(self) -> None:
        self.rate_limiter.wait()

    def render(self, url: str, wait_selector: str | None = None) -> str:
        self.rate_limiter.wait()
        return self.session.render(url, wait_selector=wait_selector)

    def fetch_html(self, url: str) -> str:
        self.rate_limiter.wait()
        try:
            response = self.http_client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise AdapterError(f"HTTP fetch failed for {url}: {exc}") from exc
        return response.text

    def close(self) -> None:
        try:
            self.session.close()
        finally:
            self.http_client.close()


SessionFactory = Callable[[BrowserSettings], BrowserSession]
ClientFactory = Callable[[BrowserSettings], httpx.Client]


def _default_client(settings: BrowserSettings) -> httpx.Client:
    headers = {"User-Agent": settings.user_agent} if settings.user_agent else None
    return httpx.Client(follow_redirects=True, timeout=settings.http_timeout, headers=headers)


class ExecutionContextManager:
    """Hand out exactly one execution context per source.

    Standard sources share one lazily created context for the whole run.
    Sources that declare ``requires_privileged_context`` get a fresh context
    built from the privileged settings, closed as soon as the source finishes
    and never reused.
    """

    def __init__(
        self,
        standard: BrowserSettings,
        privileged: BrowserSettings,
        page_delay: float = 2.0,
        session_factory: SessionFactory = BrowserSession,
        client_factory: ClientFactory = _default_client,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.standard_settings = standard
        self.privileged_settings = privileged
        self.page_delay = page_delay
        self.session_factory = session_factory
        self.client_factory = client_factory
        self.logger = logger or structlog.get_logger("catalog_discovery.context")
        self._shared: ExecutionContext | None = None

    @contextmanager
    def context_for(self, source: "SourceDescriptor") -> Iterator[ExecutionContext]:
        if not source.requires_privileged_context:
            if self._shared is None:
                self._shared = self._open(self.standard_settings, privileged=False)
            yield self._shared
            return

        context = self._open(self.privileged_settings, privileged=True)
        self.logger.info("privileged_context_opened", source=source.source_id)
        try:
            yield context
        finally:
            self._teardown(context)
            self.logger.info("privileged_context_closed", source=source.source_id)

    def close(self) -> None:
        if self._shared is not None:
            shared, self._shared = self._shared, None
            self._teardown(shared)

    def _open(self, settings: BrowserSettings, *, privileged: bool) -> ExecutionContext:
        session = self.session_factory(settings)
        try:
            session.start()
            client = self.client_factory(settings)
        except Exception as exc:  # noqa: BLE001
            try:
                session.close()
            except Exception:  # noqa: BLE001
                self.logger.warning("context_cleanup_failed", privileged=privileged)
            raise ExecutionContextError(
                f"Could not start {'privileged' if privileged else 'standard'} context: {exc}"
            ) from exc
        return ExecutionContext(
            session,
            client,
            RateLimiter(self.page_delay),
            privileged=privileged,
        )

    def _teardown(self, context: ExecutionContext) -> None:
        try:
            context.close()
        except Exception as exc:  # noqa: BLE001
            raise ExecutionContextError(f"Could not close execution context: {exc}") from exc


__all__ = ["BrowserSession", "ExecutionContext", "ExecutionContextManager"]
