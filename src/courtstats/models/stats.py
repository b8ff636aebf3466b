"""Stat line models passed between extraction, merge and projection."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict


STAT_FIELDS: tuple[str, ...] = (
    "ppg",
    "rpg",
    "apg",
    "spg",
    "bpg",
    "topg",
    "fg_pct",
    "fg3_pct",
    "ft_pct",
)
PERCENT_FIELDS: frozenset[str] = frozenset({"fg_pct", "fg3_pct", "ft_pct"})


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StatFields(_CamelModel):
    """Per-game averages and shooting percentages; ``None`` means unknown."""

    ppg: Optional[float] = None
    rpg: Optional[float] = None
    apg: Optional[float] = None
    spg: Optional[float] = None
    bpg: Optional[float] = None
    topg: Optional[float] = None
    fg_pct: Optional[float] = None
    fg3_pct: Optional[float] = None
    ft_pct: Optional[float] = None

    def known_stats(self) -> Dict[str, float]:
        values = {}
        for name in STAT_FIELDS:
            value = getattr(self, name)
            if value is not None:
                values[name] = value
        return values

    def is_empty(self) -> bool:
        return not self.known_stats()


class SeasonStatLine(StatFields):
    """One (player, season, source) line as produced by the extraction layer."""

    season: str
    source: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class MergedStatLine(StatFields):
    """One (player, season) line merged across sources."""

    season: str
    sources: Dict[str, str] = Field(default_factory=dict)


class ProjectedStatLine(StatFields):
    """Next-season estimate; derived and never merged or re-projected."""

    season: str
    based_on: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class RecentGame(_CamelModel):
    """Box score line for a single recent game."""

    date_event: Optional[str] = None
    event: Optional[str] = None
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    points: Optional[float] = None
    assists: Optional[float] = None
    rebounds: Optional[float] = None
    blocks: Optional[float] = None
    steals: Optional[float] = None
    minutes: Optional[float] = None


class CacheEntry(_CamelModel):
    """Persisted per-player stats document."""

    player_id: str
    seasons: Dict[str, MergedStatLine] = Field(default_factory=dict)
    projection: Optional[ProjectedStatLine] = None
    recent_games: list[RecentGame] = Field(default_factory=list)
    last_updated: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "CacheEntry":
        return cls.model_validate(document)

    def to_document(self) -> Dict[str, Any]:
        document = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        # A merge-write must clear the previous projection when none was made.
        document.setdefault("projection", None)
        return document
