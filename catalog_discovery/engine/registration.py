"""Rate-limited, partial-failure-tolerant write-back of accepted items."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Protocol

import structlog

from ..errors import RegistrationError
from .items import AcceptedItem
from .rate_limit import RateLimiter


class RecordWriter(Protocol):
    def create_record(self, name: str, url: str, source_ref: str) -> str:
        """Create one record and return its id."""


@dataclass(frozen=True, slots=True)
class RegistrationOutcome:
    item: AcceptedItem
    succeeded: bool
    record_id: str | None = None
    error: str | None = None


class RegistrationSync:
    """Register each accepted item with exactly one create call.

    Calls are spaced by the injected rate limiter. A failing item is recorded
    and skipped; it is not retried and it never blocks the items after it.
    """

    def __init__(
        self,
        store: RecordWriter,
        rate_limiter: RateLimiter,
        source_records: Mapping[str, str],
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.store = store
        self.rate_limiter = rate_limiter
        self.source_records = dict(source_records)
        self.logger = logger or structlog.get_logger("catalog_discovery.registration")

    def register(self, item: AcceptedItem) -> RegistrationOutcome:
        self.rate_limiter.wait()
        try:
            source_ref = self.source_records.get(item.source_id)
            if source_ref is None:
                raise RegistrationError(f"No store record for source {item.source_id}")
            record_id = self.store.create_record(item.name, item.canonical_url, source_ref)
        except Exception as exc:  # noqa: BLE001
            self.logger.error(
                "registration_failed",
                source=item.source_id,
                url=item.canonical_url,
                product_name=item.name,
                error=str(exc),
            )
            return RegistrationOutcome(item=item, succeeded=False, error=str(exc))
        self.logger.info(
            "registered",
            source=item.source_id,
            url=item.canonical_url,
            product_name=item.name,
            record_id=record_id,
        )
        return RegistrationOutcome(item=item, succeeded=True, record_id=record_id)

    def register_all(self, items: Iterable[AcceptedItem]) -> list[RegistrationOutcome]:
        return [self.register(item) for item in items]


__all__ = ["RecordWriter", "RegistrationOutcome", "RegistrationSync"]
