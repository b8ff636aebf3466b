"""Bounded multiplicative next-season projection."""

from __future__ import annotations

from courtstats.merge.seasons import next_season_label
from courtstats.models import PERCENT_FIELDS, MergedStatLine, ProjectedStatLine


GROWTH_FACTOR = 1.01
PCT_FLOOR = 0.20
PCT_CEILING = 0.70


def project(
    current: MergedStatLine | None,
    *,
    growth_factor: float = GROWTH_FACTOR,
    pct_floor: float = PCT_FLOOR,
    pct_ceiling: float = PCT_CEILING,
) -> ProjectedStatLine | None:
    """Project the season after ``current``.

    Every known stat is scaled by ``growth_factor`` and rounded to three
    decimals; shooting percentages are then clamped to ``[pct_floor,
    pct_ceiling]``. Unknown stats stay unknown. Returns ``None`` when there is
    no current line to project from.
    """

    if current is None:
        return None
    projected: dict[str, float] = {}
    for name, value in current.known_stats().items():
        scaled = round(value * growth_factor, 3)
        if name in PERCENT_FIELDS:
            scaled = min(pct_ceiling, max(pct_floor, scaled))
        projected[name] = scaled
    return ProjectedStatLine(
        season=next_season_label(current.season),
        based_on=current.season,
        **projected,
    )


__all__ = ["GROWTH_FACTOR", "PCT_CEILING", "PCT_FLOOR", "project"]
