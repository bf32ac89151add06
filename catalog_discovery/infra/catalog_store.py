"""REST client for the external catalog record store (Airtable-style tables)."""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Iterable, Iterator

import httpx
import structlog

from ..config import CatalogStoreConfig
from ..errors import CanonicalizationError, CatalogLoadError, RegistrationError


def _excerpt(response: httpx.Response, limit: int = 200) -> str:
    text = response.text.strip().replace("\n", " ")
    return text[:limit]


class CatalogStore:
    """Paginated read, source lookup and record creation against one store table."""

    def __init__(
        self,
        config: CatalogStoreConfig,
        token: str,
        client: httpx.Client | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or structlog.get_logger("catalog_discovery.store")
        self._client = client or httpx.Client(timeout=config.request_timeout)
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    def close(self) -> None:
        self._client.close()

    def _table_url(self, table_id: str) -> str:
        return f"{self.config.api_base}/{self.config.base_id}/{table_id}"

    def _get(self, table_id: str, params: list[tuple[str, str]]) -> dict[str, Any]:
        response = self._client.get(
            self._table_url(table_id),
            params=params,
            headers=self._headers,
            timeout=self.config.request_timeout,
        )
        response.raise_for_status()
        return response.json()

    # ------------------------------------------------------------------
    # Known catalog
    # ------------------------------------------------------------------
    def iter_known_urls(self) -> Iterator[str]:
        """Yield the identity URL of every record, following offset tokens until exhausted."""

        offset: str | None = None
        while True:
            params = [("fields[]", self.config.url_field)]
            if offset:
                params.append(("offset", offset))
            payload = self._get(self.config.table_id, params)
            for record in payload.get("records", []):
                url = (record.get("fields") or {}).get(self.config.url_field)
                if url:
                    yield str(url)
            offset = payload.get("offset")
            if not offset:
                break

    def load_known_catalog(self, canonicalize: Callable[[str], str]) -> frozenset[str]:
        """Snapshot all known URLs in canonical form. Raises :class:`CatalogLoadError`."""

        known: set[str] = set()
        skipped = 0
        try:
            for url in self.iter_known_urls():
                try:
                    known.add(canonicalize(url))
                except CanonicalizationError:
                    skipped += 1
        except httpx.HTTPStatusError as exc:
            raise CatalogLoadError(
                f"Catalog read failed with {exc.response.status_code}: {_excerpt(exc.response)}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise CatalogLoadError(f"Catalog read failed: {exc}") from exc
        if skipped:
            self.logger.warning("catalog_urls_unparseable", skipped=skipped)
        self.logger.info("catalog_loaded", known=len(known))
        return frozenset(known)

    # ------------------------------------------------------------------
    # Source records
    # ------------------------------------------------------------------
    def resolve_source_records(self, source_ids: Iterable[str]) -> dict[str, str]:
        """Map each source id to the value that links a new record to its source.

        Without a source table the id itself is written. With one, the linked
        record id is looked up by slug; ids that cannot be resolved are logged
        and left out of the mapping.
        """

        source_ids = list(source_ids)
        if not self.config.source_table_id:
            return {source_id: source_id for source_id in source_ids}

        resolved: dict[str, str] = {}
        for source_id in source_ids:
            formula = f"{{{self.config.source_slug_field}}}='{source_id}'"
            try:
                payload = self._get(
                    self.config.source_table_id,
                    [("filterByFormula", formula), ("fields[]", self.config.source_slug_field)],
                )
            except (httpx.HTTPError, ValueError) as exc:
                self.logger.error("source_record_lookup_failed", source=source_id, error=str(exc))
                continue
            records = payload.get("records") or []
            if not records:
                self.logger.error("source_record_missing", source=source_id)
                continue
            resolved[source_id] = records[0]["id"]
        return resolved

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def build_fields(
        self, name: str, url: str, source_ref: str, today: date | None = None
    ) -> dict[str, Any]:
        cfg = self.config
        note = cfg.note_template.format(date=(today or date.today()).isoformat())
        source_value: Any = [source_ref] if cfg.source_table_id else source_ref
        return {
            cfg.name_field: name,
            cfg.url_field: url,
            cfg.source_field: source_value,
            cfg.status_field: cfg.status_value,
            cfg.note_field: note,
        }

    def create_record(self, name: str, url: str, source_ref: str) -> str:
        """Create one record and return its id. Raises :class:`RegistrationError`."""

        body = {"fields": self.build_fields(name, url, source_ref)}
        try:
            response = self._client.post(
                self._table_url(self.config.table_id),
                json=body,
                headers=self._headers,
                timeout=self.config.request_timeout,
            )
            response.raise_for_status()
            return str(response.json().get("id", ""))
        except httpx.HTTPStatusError as exc:
            raise RegistrationError(
                f"Create failed with {exc.response.status_code}: {_excerpt(exc.response)}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise RegistrationError(f"Create failed: {exc}") from exc


__all__ = ["CatalogStore"]
