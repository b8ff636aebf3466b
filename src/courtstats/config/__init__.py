"""Configuration helpers for providers and runtime settings."""

from .settings import Settings, load_settings
from .sources import (
    BALLDONTLIE,
    BBREF,
    ESPN,
    NBA_STATS,
    SPORTSDB,
    SourceConfig,
    enabled_sources,
    get_source,
    iter_sources,
    photo_sources,
    precedence_of,
)

__all__ = [
    "Settings",
    "load_settings",
    "BALLDONTLIE",
    "BBREF",
    "ESPN",
    "NBA_STATS",
    "SPORTSDB",
    "SourceConfig",
    "enabled_sources",
    "get_source",
    "iter_sources",
    "photo_sources",
    "precedence_of",
]
