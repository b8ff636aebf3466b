"""Registry of upstream stat providers and their merge precedence."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Literal, Optional

from .settings import Settings


NBA_STATS = "nba_stats"
ESPN = "espn"
BALLDONTLIE = "balldontlie"
BBREF = "bbref"
SPORTSDB = "sportsdb"


@dataclass(frozen=True)
class SourceConfig:
    key: str
    label: str
    # Higher wins when two sources supply the same field for the same season.
    precedence: int
    # Sources outside the season merge only feed auxiliary data (recent games).
    merges_seasons: bool
    lookup: Literal["index", "search"]
    photo_url_template: Optional[str] = None


_SOURCES: Dict[str, SourceConfig] = {
    NBA_STATS: SourceConfig(
        key=NBA_STATS,
        label="NBA Stats API",
        precedence=4,
        merges_seasons=True,
        lookup="index",
        photo_url_template="https://cdn.nba.com/headshots/nba/latest/1040x760/{provider_id}.png",
    ),
    ESPN: SourceConfig(
        key=ESPN,
        label="ESPN",
        precedence=3,
        merges_seasons=True,
        lookup="search",
        photo_url_template="https://a.espncdn.com/i/headshots/nba/players/full/{provider_id}.png",
    ),
    BALLDONTLIE: SourceConfig(
        key=BALLDONTLIE,
        label="balldontlie",
        precedence=2,
        merges_seasons=True,
        lookup="search",
    ),
    BBREF: SourceConfig(
        key=BBREF,
        label="Basketball Reference",
        precedence=1,
        merges_seasons=True,
        lookup="search",
    ),
    SPORTSDB: SourceConfig(
        key=SPORTSDB,
        label="TheSportsDB",
        precedence=0,
        merges_seasons=False,
        lookup="search",
    ),
}


def iter_sources() -> Iterable[SourceConfig]:
    """Return all configured sources, highest precedence first."""

    return sorted(_SOURCES.values(), key=lambda source: -source.precedence)


def get_source(key: str) -> SourceConfig:
    """Fetch a source by key, raising KeyError if missing."""

    normalized = key.lower()
    if normalized not in _SOURCES:
        raise KeyError(f"No source configured for key={key!r}")
    return _SOURCES[normalized]


def enabled_sources(settings: Settings | None = None) -> List[SourceConfig]:
    disabled = settings.disabled_sources if settings is not None else frozenset()
    return [source for source in iter_sources() if source.key not in disabled]


def precedence_of(key: str) -> int:
    """Merge precedence for ``key``; unknown sources rank below every provider."""

    source = _SOURCES.get(key)
    return source.precedence if source is not None else -1


def photo_sources() -> List[SourceConfig]:
    return [source for source in iter_sources() if source.photo_url_template]
