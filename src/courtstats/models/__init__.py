"""Canonical models shared across ingestion, merge and projection layers."""

from .player import Player, ProviderId, RawRecord
from .stats import (
    PERCENT_FIELDS,
    STAT_FIELDS,
    CacheEntry,
    MergedStatLine,
    ProjectedStatLine,
    RecentGame,
    SeasonStatLine,
    StatFields,
)

__all__ = [
    "Player",
    "ProviderId",
    "RawRecord",
    "PERCENT_FIELDS",
    "STAT_FIELDS",
    "CacheEntry",
    "MergedStatLine",
    "ProjectedStatLine",
    "RecentGame",
    "SeasonStatLine",
    "StatFields",
]
