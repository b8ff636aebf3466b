"""Merge engine and season label helpers."""

from .engine import build_history, merge
from .seasons import (
    current_season_label,
    next_season_label,
    normalize_season_label,
    season_label,
    season_start_year,
)

__all__ = [
    "build_history",
    "merge",
    "current_season_label",
    "next_season_label",
    "normalize_season_label",
    "season_label",
    "season_start_year",
]
