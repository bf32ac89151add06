from __future__ import annotations

import httpx
import pytest

from catalog_discovery.config import BrowserSettings
from catalog_discovery.engine import ExecutionContext, ExecutionContextManager, RateLimiter
from catalog_discovery.errors import AdapterError, ExecutionContextError


class FakeSession:
    instances: list["FakeSession"] = []

    def __init__(self, settings: BrowserSettings, fail_start: bool = False, fail_close: bool = False) -> None:
        self.settings = settings
        self.started = False
        self.closed = False
        self.fail_start = fail_start
        self.fail_close = fail_close
        self.rendered: list[tuple[str, str | None]] = []
        FakeSession.instances.append(self)

    def start(self) -> None:
        if self.fail_start:
            raise RuntimeError("browser binary missing")
        self.started = True

    @property
    def page(self):
        return self

    def render(self, url: str, wait_selector: str | None = None) -> str:
        self.rendered.append((url, wait_selector))
        return f"<html>{url}</html>"

    def close(self) -> None:
        if self.fail_close:
            raise RuntimeError("close failed")
        self.closed = True


@pytest.fixture(autouse=True)
def _reset_sessions():
    FakeSession.instances = []
    yield


def _client(settings: BrowserSettings) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/missing":
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=f"body:{request.url.path}")

    return httpx.Client(transport=httpx.MockTransport(handler))


def _manager(session_factory=FakeSession) -> ExecutionContextManager:
    return ExecutionContextManager(
        standard=BrowserSettings(),
        privileged=BrowserSettings(headless=False, user_agent="Desktop UA"),
        page_delay=0.0,
        session_factory=session_factory,
        client_factory=_client,
    )


def test_standard_sources_share_one_context(make_source) -> None:
    manager = _manager()
    with manager.context_for(make_source("a")) as first:
        pass
    with manager.context_for(make_source("b")) as second:
        pass
    assert first is second
    assert len(FakeSession.instances) == 1
    assert not FakeSession.instances[0].closed
    manager.close()
    assert FakeSession.instances[0].closed


def test_privileged_context_is_fresh_and_torn_down(make_source) -> None:
    manager = _manager()
    with manager.context_for(make_source("a")) as standard:
        pass
    with manager.context_for(make_source("shimano", requires_privileged_context=True)) as privileged:
        assert privileged is not standard
        assert privileged.privileged
        assert privileged.session.settings.headless is False
        assert privileged.session.settings.user_agent == "Desktop UA"
    assert privileged.session.closed
    with manager.context_for(make_source("shimano", requires_privileged_context=True)) as again:
        assert again is not privileged
    assert len(FakeSession.instances) == 3
    with manager.context_for(make_source("b")) as standard_again:
        assert standard_again is standard


def test_privileged_context_closed_when_source_raises(make_source) -> None:
    manager = _manager()
    with pytest.raises(AdapterError):
        with manager.context_for(make_source("shimano", requires_privileged_context=True)):
            raise AdapterError("listing markup changed")
    assert FakeSession.instances[0].closed


def test_start_failure_raises_context_error(make_source) -> None:
    manager = _manager(lambda settings: FakeSession(settings, fail_start=True))
    with pytest.raises(ExecutionContextError):
        with manager.context_for(make_source("a")):
            pass
    assert FakeSession.instances[0].closed


def test_client_failure_closes_started_session(make_source) -> None:
    def broken_client(settings: BrowserSettings) -> httpx.Client:
        raise OSError("proxy settings unreadable")

    manager = ExecutionContextManager(
        standard=BrowserSettings(),
        privileged=BrowserSettings(headless=False),
        page_delay=0.0,
        session_factory=FakeSession,
        client_factory=broken_client,
    )
    with pytest.raises(ExecutionContextError):
        with manager.context_for(make_source("shimano", requires_privileged_context=True)):
            pass
    assert FakeSession.instances[0].started
    assert FakeSession.instances[0].closed


def test_teardown_failure_raises_context_error(make_source) -> None:
    manager = _manager(lambda settings: FakeSession(settings, fail_close=True))
    with pytest.raises(ExecutionContextError):
        with manager.context_for(make_source("shimano", requires_privileged_context=True)):
            pass


def test_context_render_and_fetch_are_paced() -> None:
    waits: list[float] = []

    class CountingLimiter(RateLimiter):
        def wait(self) -> float:
            waits.append(1.0)
            return 0.0

    session = FakeSession(BrowserSettings())
    ctx = ExecutionContext(session, _client(BrowserSettings()), CountingLimiter(2.0))
    assert ctx.render("https://m.example.com/list", wait_selector="a.item") == "<html>https://m.example.com/list</html>"
    assert ctx.fetch_html("https://m.example.com/page") == "body:/page"
    ctx.pause()
    assert len(waits) == 3
    assert session.rendered == [("https://m.example.com/list", "a.item")]


def test_fetch_html_wraps_http_errors() -> None:
    ctx = ExecutionContext(FakeSession(BrowserSettings()), _client(BrowserSettings()), RateLimiter(0.0))
    with pytest.raises(AdapterError):
        ctx.fetch_html("https://m.example.com/missing")
