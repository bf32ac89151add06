"""Pydantic models used across the catalog-discovery configuration flow."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

_SOURCE_ID_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]*$")

DESKTOP_CHROME_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)


class ScheduleType(str, Enum):
    """Scheduler modes for periodic discovery runs."""

    CRON = "cron"
    INTERVAL = "interval"
    ONCE = "once"


class ScheduleConfig(BaseModel):
    """Configuration describing when the discovery job should run."""

    type: ScheduleType = Field(default=ScheduleType.CRON)
    value: Any = Field(
        default="0 3 * * *",
        description="Cron expression, interval seconds or ISO datetime, depending on type.",
    )

    @model_validator(mode="after")
    def _validate_value(self) -> "ScheduleConfig":
        if self.type is ScheduleType.CRON and not isinstance(self.value, str):
            raise ValueError("Cron schedule requires string expression")
        if self.type is ScheduleType.INTERVAL and not isinstance(self.value, (int, float, dict)):
            raise ValueError("Interval schedule requires seconds (int/float) or kwargs dict")
        if (
            self.type is ScheduleType.ONCE
            and self.value is not None
            and not isinstance(self.value, str)
        ):
            raise ValueError("Once schedule expects ISO datetime string or null")
        return self


class BrowserSettings(BaseModel):
    """Client identity and limits of one execution context."""

    headless: bool = True
    user_agent: str | None = None
    viewport_size: tuple[int, int] = (1920, 1080)
    locale: str | None = None
    navigation_timeout_ms: int = 30000
    http_timeout: float = 20.0
    wait_until: str = "domcontentloaded"

    @field_validator("navigation_timeout_ms")
    @classmethod
    def _positive_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("navigation_timeout_ms must be > 0")
        return value

    @field_validator("http_timeout")
    @classmethod
    def _positive_http_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("http_timeout must be > 0")
        return value


def _default_privileged_browser() -> BrowserSettings:
    return BrowserSettings(headless=False, user_agent=DESKTOP_CHROME_UA)


class CatalogStoreConfig(BaseModel):
    """Location, credentials and field mapping of the external record store."""

    api_base: str = "https://api.airtable.com/v0"
    base_id: str = ""
    table_id: str = ""
    source_table_id: str | None = None
    source_slug_field: str = "Slug"
    token_env: str = "CATALOG_STORE_TOKEN"
    request_timeout: float = 30.0
    name_field: str = "Name"
    url_field: str = "URL"
    source_field: str = "Source"
    status_field: str = "Status"
    note_field: str = "Note"
    status_value: str = "new"
    note_template: str = "auto-discovered ({date})"

    @field_validator("api_base")
    @classmethod
    def _strip_base(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("request_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("request_timeout must be > 0")
        return value


class RegistrationConfig(BaseModel):
    """Write-back pacing against the store's requests-per-second ceiling."""

    min_interval: float = 0.2

    @field_validator("min_interval")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("min_interval must be >= 0")
        return value


class ListingConfig(BaseModel):
    """Selectors and paging for the built-in listing discoverer."""

    start_url: str
    category_paths: list[str] = Field(default_factory=list)
    page_url_template: str | None = None
    item_selector: str
    name_selector: str | None = None
    next_page_selector: str | None = None
    url_contains: str | None = None
    wait_selector: str | None = None
    render: bool = True
    max_pages: int = 10

    @model_validator(mode="after")
    def _validate_listing(self) -> "ListingConfig":
        if not self.item_selector.strip():
            raise ValueError("item_selector cannot be empty")
        if self.max_pages < 1:
            raise ValueError("max_pages must be >= 1")
        if self.page_url_template is not None:
            if "{page}" not in self.page_url_template:
                raise ValueError("page_url_template must contain a {page} placeholder")
            try:
                self.page_url_template.format(url=self.start_url, page=2)
            except (KeyError, IndexError, ValueError) as exc:
                raise ValueError(
                    "page_url_template only supports {url} and {page} placeholders"
                ) from exc
        self.category_paths = [path.strip() for path in self.category_paths if path.strip()]
        return self


class SourceConfig(BaseModel):
    """Full definition of one product-listing source."""

    source_id: str
    display_name: str | None = None
    enabled: bool = True
    discoverer: str = "listing"
    listing: ListingConfig | None = None
    options: dict[str, Any] = Field(default_factory=dict)
    name_keyword_excludes: list[str] = Field(default_factory=list)
    url_slug_excludes: list[str] = Field(default_factory=list)
    requires_privileged_context: bool = False
    canonical_id_param: str | None = None

    @field_validator("source_id")
    @classmethod
    def _validate_id(cls, value: str) -> str:
        value = value.strip()
        if not _SOURCE_ID_PATTERN.match(value):
            raise ValueError(
                "source_id must be lower-case letters, digits, '-' or '_' (e.g. 'megabass')"
            )
        return value

    @field_validator("name_keyword_excludes", "url_slug_excludes", mode="before")
    @classmethod
    def _drop_blank_rules(cls, value: Any) -> list[str]:
        if value in (None, ""):
            return []
        if not isinstance(value, (list, tuple)):
            raise ValueError("Exclusion rules expect a list of strings")
        # a blank rule would match every item
        return [str(item).strip() for item in value if str(item).strip()]

    @model_validator(mode="after")
    def _validate_discoverer(self) -> "SourceConfig":
        if self.discoverer == "listing":
            if self.listing is None:
                raise ValueError("listing discoverer requires a 'listing' section")
        elif ":" not in self.discoverer:
            raise ValueError("discoverer must be 'listing' or an import path 'module:function'")
        return self

    @property
    def label(self) -> str:
        return self.display_name or self.source_id


class GlobalConfig(BaseModel):
    """Global controls shared across sources."""

    store: CatalogStoreConfig = Field(default_factory=CatalogStoreConfig)
    registration: RegistrationConfig = Field(default_factory=RegistrationConfig)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    privileged_browser: BrowserSettings = Field(default_factory=_default_privileged_browser)
    host_aliases: dict[str, str] = Field(default_factory=dict)
    page_delay: float = 2.0
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)

    @field_validator("host_aliases", mode="before")
    @classmethod
    def _lower_hosts(cls, value: Any) -> dict[str, str]:
        if value in (None, ""):
            return {}
        if not isinstance(value, dict):
            raise ValueError("host_aliases expects a mapping of host -> preferred host")
        aliases = {str(k).strip().lower(): str(v).strip().lower() for k, v in value.items()}
        chained = sorted(set(aliases.values()) & set(aliases))
        if chained:
            raise ValueError(f"host_aliases targets must not be aliased again: {chained}")
        return aliases

    @field_validator("page_delay")
    @classmethod
    def _non_negative_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError("page_delay must be >= 0")
        return value


__all__ = [
    "BrowserSettings",
    "CatalogStoreConfig",
    "DESKTOP_CHROME_UA",
    "GlobalConfig",
    "ListingConfig",
    "RegistrationConfig",
    "ScheduleConfig",
    "ScheduleType",
    "SourceConfig",
]
