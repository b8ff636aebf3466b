"""Canonical ``YYYY-YY`` season labels."""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Optional


_SEASON_RANGE = re.compile(r"^(\d{4})\s*[-/]\s*(\d{2}|\d{4})$")
# NBA stats season ids prefix the start year with a season-type digit (2 = regular season).
_SEASON_ID = re.compile(r"^[1-5](\d{4})$")
_SEASON_YEAR = re.compile(r"^(\d{4})$")

_FIRST_SEASON = 1946
_LAST_SEASON = 2100
_SEASON_START_MONTH = 10


def season_label(start_year: int) -> str:
    return f"{start_year}-{(start_year + 1) % 100:02d}"


def season_start_year(label: str) -> int:
    return int(label[:4])


def _valid(start_year: int) -> Optional[str]:
    if _FIRST_SEASON <= start_year <= _LAST_SEASON:
        return season_label(start_year)
    return None


def normalize_season_label(value: Any, *, year_is_end: bool = False) -> Optional[str]:
    """Map a provider's season notation to ``YYYY-YY``.

    Accepts ``"2023-24"``, ``"2023-2024"``, NBA season ids such as ``"22023"``,
    and bare years. A bare year is a start year unless ``year_is_end`` is set
    (sources that label 2023-24 as ``2024``). Unrecognized input returns ``None``.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return _valid(value - 1 if year_is_end else value)
    text = str(value).strip()
    if not text:
        return None
    match = _SEASON_RANGE.match(text)
    if match:
        return _valid(int(match.group(1)))
    match = _SEASON_ID.match(text)
    if match:
        return _valid(int(match.group(1)))
    match = _SEASON_YEAR.match(text)
    if match:
        year = int(match.group(1))
        return _valid(year - 1 if year_is_end else year)
    return None


def current_season_label(today: date | None = None) -> str:
    """Season in progress on ``today``; seasons start in October."""

    today = today or date.today()
    start_year = today.year if today.month >= _SEASON_START_MONTH else today.year - 1
    return season_label(start_year)


def next_season_label(label: str) -> str:
    return season_label(season_start_year(label) + 1)
