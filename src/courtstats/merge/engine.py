"""Field-level merge of per-source season lines under source precedence."""

from __future__ import annotations

import json
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from courtstats.config import precedence_of
from courtstats.models import MergedStatLine, SeasonStatLine


# Lines re-derived from an already merged record sort before fresh lines of the
# same source so a new observation replaces the cached one.
_CACHED = 0
_FRESH = 1


def _fold_key(item: Tuple[int, SeasonStatLine]) -> tuple:
    origin, line = item
    return (
        precedence_of(line.source),
        origin,
        line.source,
        json.dumps(line.known_stats(), sort_keys=True),
    )


def _split_merged(base: MergedStatLine) -> List[SeasonStatLine]:
    by_source: Dict[str, Dict[str, float]] = defaultdict(dict)
    for name, value in base.known_stats().items():
        by_source[base.sources.get(name, "")][name] = value
    return [
        SeasonStatLine(season=base.season, source=source, **values)
        for source, values in by_source.items()
    ]


def merge(
    lines: Iterable[SeasonStatLine],
    base: MergedStatLine | None = None,
    *,
    season: str | None = None,
) -> MergedStatLine:
    """Merge season lines for one (player, season) pair.

    Left fold in increasing precedence: each line overwrites only the fields it
    actually knows, so the highest-precedence known value wins and unknowns
    never erase a value. The result does not depend on the order of ``lines``.
    When ``base`` is given its fields keep the precedence of the sources that
    supplied them.
    """

    items: List[Tuple[int, SeasonStatLine]] = [(_FRESH, line) for line in lines]
    if base is not None:
        items.extend((_CACHED, line) for line in _split_merged(base))

    seasons = {line.season for _, line in items}
    if base is not None:
        seasons.add(base.season)
    if season is not None:
        seasons.add(season)
    if len(seasons) != 1:
        raise ValueError(f"merge expects exactly one season, got {sorted(seasons)!r}")
    (target_season,) = seasons

    values: Dict[str, float] = {}
    sources: Dict[str, str] = {}
    for _, line in sorted(items, key=_fold_key):
        for name, value in line.known_stats().items():
            values[name] = value
            sources[name] = line.source
    return MergedStatLine(season=target_season, sources=sources, **values)


def build_history(
    lines: Iterable[SeasonStatLine],
    existing: Optional[Mapping[str, MergedStatLine]] = None,
) -> Dict[str, MergedStatLine]:
    """Season-keyed merged history; seasons only present in ``existing`` are kept."""

    existing = existing or {}
    grouped: Dict[str, List[SeasonStatLine]] = defaultdict(list)
    for line in lines:
        grouped[line.season].append(line)

    history: Dict[str, MergedStatLine] = {}
    for season in sorted(set(grouped) | set(existing)):
        history[season] = merge(grouped.get(season, []), existing.get(season), season=season)
    return history
