"""Shared fixtures: configuration builders and in-memory stand-ins for I/O."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator

import pytest
import structlog

from catalog_discovery import logging_conf
from catalog_discovery.config import (
    CatalogStoreConfig,
    ConfigLocator,
    ConfigRepository,
    GlobalConfig,
    ListingConfig,
    SourceConfig,
)
from catalog_discovery.engine import Candidate, Canonicalizer, RateLimiter, RegistrationSync
from catalog_discovery.errors import CatalogLoadError, RegistrationError
from catalog_discovery.sources import SourceDescriptor


class FakeStore:
    """Catalog store keeping records in memory."""

    def __init__(
        self,
        known: Iterable[str] = (),
        fail_load: bool = False,
        failing_urls: Iterable[str] = (),
        unresolved: Iterable[str] = (),
    ) -> None:
        self.known = list(known)
        self.fail_load = fail_load
        self.failing_urls = set(failing_urls)
        self.unresolved = set(unresolved)
        self.created: list[dict[str, str]] = []
        self.load_calls = 0

    def load_known_catalog(self, canonicalize: Callable[[str], str]) -> frozenset[str]:
        self.load_calls += 1
        if self.fail_load:
            raise CatalogLoadError("Catalog read failed with 503: unavailable")
        return frozenset(canonicalize(url) for url in self.known)

    def resolve_source_records(self, source_ids: Iterable[str]) -> dict[str, str]:
        return {
            source_id: f"rec-{source_id}"
            for source_id in source_ids
            if source_id not in self.unresolved
        }

    def create_record(self, name: str, url: str, source_ref: str) -> str:
        if url in self.failing_urls:
            raise RegistrationError(f"Create failed with 422: {url}")
        self.created.append({"name": name, "url": url, "source": source_ref})
        return f"rec{len(self.created)}"


class FakeContextManager:
    """Records which sources entered a context; yields a marker per kind."""

    def __init__(self) -> None:
        self.entered: list[tuple[str, bool]] = []
        self.closed = 0

    @contextmanager
    def context_for(self, source: SourceDescriptor) -> Iterator[str]:
        self.entered.append((source.source_id, source.requires_privileged_context))
        yield "privileged" if source.requires_privileged_context else "standard"

    def close(self) -> None:
        self.closed += 1


class NoWaitLimiter(RateLimiter):
    def __init__(self) -> None:
        super().__init__(0.0)
        self.calls = 0

    def wait(self) -> float:
        self.calls += 1
        return 0.0


@pytest.fixture
def sample_global_config() -> GlobalConfig:
    return GlobalConfig(
        store=CatalogStoreConfig(base_id="appTest", table_id="tblProducts"),
        host_aliases={"bluebluefishing.com": "www.bluebluefishing.com"},
        page_delay=0.0,
    )


@pytest.fixture
def sample_source_config() -> Callable[..., SourceConfig]:
    def _builder(**overrides: Any) -> SourceConfig:
        base: dict[str, Any] = {
            "source_id": "example",
            "display_name": "Example Maker",
            "listing": ListingConfig(
                start_url="https://maker.example.com/products/",
                item_selector="a.product",
                render=False,
            ),
        }
        base.update(overrides)
        return SourceConfig(**base)

    return _builder


@pytest.fixture
def make_source() -> Callable[..., SourceDescriptor]:
    """Build a descriptor whose discover function returns fixed candidates."""

    def _builder(
        source_id: str,
        candidates: Iterable[tuple[str, str]] = (),
        error: Exception | None = None,
        **overrides: Any,
    ) -> SourceDescriptor:
        items = [Candidate(url=url, name=name) for url, name in candidates]

        def discover(ctx):  # noqa: ANN001
            if error is not None:
                raise error
            return items

        return SourceDescriptor(source_id=source_id, discover=discover, **overrides)

    return _builder


@pytest.fixture
def fake_store() -> Callable[..., FakeStore]:
    return FakeStore


@pytest.fixture
def fake_context_manager() -> FakeContextManager:
    return FakeContextManager()


@pytest.fixture
def registration_factory() -> Callable[[FakeStore], Callable]:
    def _factory(store: FakeStore) -> Callable:
        return lambda source_records: RegistrationSync(store, NoWaitLimiter(), source_records)

    return _factory


@pytest.fixture
def default_canonicalizer(sample_global_config: GlobalConfig) -> Canonicalizer:
    return Canonicalizer(sample_global_config.host_aliases)


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("CATALOG_DISCOVERY_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository


@pytest.fixture
def configured_logging(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[Path]:
    """Install the real JSON logging stack under ``tmp_path/logs``; undo it afterwards."""

    monkeypatch.setattr(logging_conf, "_LOGGING_INITIALISED", False)
    log_dir = tmp_path / "logs"
    logging_conf.configure_logging(log_dir=log_dir)
    yield log_dir
    names = [logging_conf._LOGGER_NAME] + [
        name
        for name in logging.root.manager.loggerDict
        if name.startswith(f"{logging_conf._LOGGER_NAME}.")
    ]
    for name in names:
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
    structlog.reset_defaults()
