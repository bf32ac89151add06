"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    BrowserSettings,
    CatalogStoreConfig,
    GlobalConfig,
    ListingConfig,
    RegistrationConfig,
    ScheduleConfig,
    ScheduleType,
    SourceConfig,
)

__all__ = [
    "BrowserSettings",
    "CatalogStoreConfig",
    "ConfigLocator",
    "ConfigRepository",
    "GlobalConfig",
    "ListingConfig",
    "RegistrationConfig",
    "ScheduleConfig",
    "ScheduleType",
    "SourceConfig",
]
