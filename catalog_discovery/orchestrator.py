"""Run controller sequencing discovery, diffing, filtering and registration."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Protocol, Sequence

import structlog

from .engine import (
    AcceptedItem,
    Candidate,
    ExclusionRule,
    ExecutionContextManager,
    RegistrationOutcome,
    RegistrationSync,
    canonicalize,
    dedupe,
    diff,
)
from .errors import CanonicalizationError, UnknownSourceError
from .sources import SourceDescriptor


class CatalogReader(Protocol):
    def load_known_catalog(self, canonicalize: Callable[[str], str]) -> frozenset[str]:
        """Snapshot of canonical URLs already in the store."""

    def resolve_source_records(self, source_ids: Iterable[str]) -> dict[str, str]:
        """Map source ids to the store value linking a record to its source."""


@dataclass(slots=True)
class RunOptions:
    dry_run: bool = False
    source_id: str | None = None


@dataclass(slots=True)
class SourceSummary:
    source_id: str
    discovered: int = 0
    new: int = 0
    excluded: int = 0
    rejected: int = 0
    errors: int = 0
    registered: int = 0
    failed: int = 0


@dataclass(slots=True)
class RunSummary:
    known_count: int
    dry_run: bool
    sources: list[SourceSummary] = field(default_factory=list)
    accepted: list[AcceptedItem] = field(default_factory=list)
    outcomes: list[RegistrationOutcome] = field(default_factory=list)
    elapsed: float = 0.0

    def by_source(self, source_id: str) -> SourceSummary:
        for summary in self.sources:
            if summary.source_id == source_id:
                return summary
        raise KeyError(source_id)

    def _total(self, attr: str) -> int:
        return sum(getattr(summary, attr) for summary in self.sources)

    @property
    def discovered(self) -> int:
        return self._total("discovered")

    @property
    def new(self) -> int:
        return self._total("new")

    @property
    def excluded(self) -> int:
        return self._total("excluded")

    @property
    def errors(self) -> int:
        return self._total("errors")

    @property
    def registered(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.succeeded)


RegistrationFactory = Callable[[Mapping[str, str]], RegistrationSync]
LoggerFactory = Callable[[str], structlog.stdlib.BoundLogger]


class Orchestrator:
    """Run every selected source strictly one after another, then write back.

    Only a failed known-catalog load (or an unknown source id) aborts a run.
    A failing source, candidate or registration is logged, counted in the
    summary and skipped.
    """

    def __init__(
        self,
        store: CatalogReader,
        context_manager: ExecutionContextManager,
        registration_factory: RegistrationFactory,
        catalog_canonicalize: Callable[[str], str] = canonicalize,
        logger: structlog.stdlib.BoundLogger | None = None,
        logger_factory: LoggerFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.context_manager = context_manager
        self.registration_factory = registration_factory
        self.catalog_canonicalize = catalog_canonicalize
        self.logger = logger or structlog.get_logger("catalog_discovery").bind(
            component="orchestrator"
        )
        self.logger_factory = logger_factory or (lambda source_id: self.logger.bind(source=source_id))
        self.clock = clock

    # ------------------------------------------------------------------
    @staticmethod
    def select_sources(
        sources: Sequence[SourceDescriptor], source_id: str | None
    ) -> list[SourceDescriptor]:
        if source_id is None:
            return list(sources)
        selected = [source for source in sources if source.source_id == source_id]
        if not selected:
            raise UnknownSourceError(source_id, [source.source_id for source in sources])
        return selected

    def run(
        self, sources: Sequence[SourceDescriptor], options: RunOptions | None = None
    ) -> RunSummary:
        options = options or RunOptions()
        selected = self.select_sources(sources, options.source_id)
        started = self.clock()
        self.logger.info(
            "run_started",
            dry_run=options.dry_run,
            sources=[source.source_id for source in selected],
        )

        known = self.store.load_known_catalog(self.catalog_canonicalize)
        source_records = self.store.resolve_source_records(
            source.source_id for source in selected
        )
        summary = RunSummary(known_count=len(known), dry_run=options.dry_run)
        accepted_urls: set[str] = set()
        known_by_policy: dict[tuple, frozenset[str]] = {}

        try:
            for source in selected:
                source_summary = SourceSummary(source.source_id)
                summary.sources.append(source_summary)
                log = self.logger_factory(source.source_id)
                if source.source_id not in source_records:
                    log.error("source_skipped", reason="no_store_record")
                    source_summary.errors += 1
                    continue
                log.info("source_started", privileged=source.requires_privileged_context)
                try:
                    candidates = self._discover(source)
                except Exception as exc:  # noqa: BLE001
                    log.error("source_failed", error=str(exc), error_type=type(exc).__name__)
                    source_summary.errors += 1
                    continue
                source_known = self._known_for(source, known, known_by_policy)
                accepted = self._process(
                    source, candidates, source_known, accepted_urls, source_summary, log
                )
                summary.accepted.extend(accepted)
        finally:
            try:
                self.context_manager.close()
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("context_close_failed", error=str(exc))

        if options.dry_run:
            self.logger.info("registration_skipped", reason="dry_run", items=len(summary.accepted))
        elif summary.accepted:
            registration = self.registration_factory(source_records)
            summary.outcomes = registration.register_all(summary.accepted)
            for outcome in summary.outcomes:
                source_summary = summary.by_source(outcome.item.source_id)
                if outcome.succeeded:
                    source_summary.registered += 1
                else:
                    source_summary.failed += 1

        summary.elapsed = self.clock() - started
        self.logger.info(
            "run_finished",
            known=summary.known_count,
            discovered=summary.discovered,
            new=summary.new,
            excluded=summary.excluded,
            errors=summary.errors,
            registered=summary.registered,
            failed=summary.failed,
            elapsed=round(summary.elapsed, 1),
        )
        return summary

    @staticmethod
    def _known_for(
        source: SourceDescriptor,
        known: frozenset[str],
        cache: dict[tuple, frozenset[str]],
    ) -> frozenset[str]:
        """Snapshot in the identity form of ``source``.

        Only an id-param policy changes the snapshot form; store URLs without
        that parameter cannot match any of the source's candidates.
        """

        policy = source.canonicalizer
        if policy.id_param is None:
            return known
        key = (policy.id_param, tuple(sorted(policy.host_aliases.items())))
        if key not in cache:
            reduced = set()
            for url in known:
                try:
                    reduced.add(policy(url))
                except CanonicalizationError:
                    continue
            cache[key] = frozenset(reduced)
        return cache[key]

    # ------------------------------------------------------------------
    def _discover(self, source: SourceDescriptor) -> list[Candidate]:
        with self.context_manager.context_for(source) as ctx:
            # materialise inside the context so lazy sources finish before teardown
            return list(source.discover(ctx))

    def _process(
        self,
        source: SourceDescriptor,
        candidates: list[Candidate],
        known: frozenset[str],
        accepted_urls: set[str],
        source_summary: SourceSummary,
        log: structlog.stdlib.BoundLogger,
    ) -> list[AcceptedItem]:
        def _reject(candidate: Candidate, exc: CanonicalizationError) -> None:
            source_summary.rejected += 1
            log.warning("candidate_rejected", url=candidate.url, product_name=candidate.name, error=exc.reason)

        unique = dedupe(candidates, source.canonicalizer, on_reject=_reject)
        new_items = diff(unique, known)
        result = source.filter_pipeline().apply(new_items)
        for exclusion in result.excluded:
            log.info("item_excluded", url=exclusion.canonical_url, product_name=exclusion.name, reason=exclusion.reason)

        accepted: list[AcceptedItem] = []
        duplicates = 0
        for canonical_url, name in result.accepted.items():
            if canonical_url in accepted_urls:
                duplicates += 1
                log.info(
                    "item_excluded",
                    url=canonical_url,
                    product_name=name,
                    reason=ExclusionRule.DUPLICATE_IN_RUN.value,
                )
                continue
            accepted_urls.add(canonical_url)
            accepted.append(AcceptedItem(canonical_url, name, source.source_id))
            log.info("item_accepted", url=canonical_url, product_name=name)

        source_summary.discovered = len(unique)
        source_summary.new = len(accepted)
        source_summary.excluded = len(result.excluded) + duplicates
        log.info(
            "source_finished",
            discovered=source_summary.discovered,
            new=source_summary.new,
            excluded=source_summary.excluded,
            rejected=source_summary.rejected,
        )
        return accepted


__all__ = ["Orchestrator", "RunOptions", "RunSummary", "SourceSummary"]
