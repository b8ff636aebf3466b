from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from courtstats.models import MergedStatLine, ProjectedStatLine, RecentGame


class CamelResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SourceStatusResponse(CamelResponse):
    source: str
    status: str
    lines: int = 0
    error: str | None = None


class StatsResponse(CamelResponse):
    player_id: str
    season: str
    season_averages: MergedStatLine | None = None
    projections: ProjectedStatLine | None = None
    all_season_averages: Dict[str, MergedStatLine] = Field(default_factory=dict)
    recent_games: List[RecentGame] = Field(default_factory=list)
    sources: List[SourceStatusResponse] = Field(default_factory=list)
    cached: bool = False
    last_updated: datetime | None = None

    @classmethod
    def from_result(cls, result: Any) -> "StatsResponse":
        return cls(
            player_id=result.player_id,
            season=result.season,
            season_averages=result.season_averages,
            projections=result.projections,
            all_season_averages=result.all_season_averages,
            recent_games=result.recent_games,
            sources=[SourceStatusResponse(**asdict(status)) for status in result.sources],
            cached=result.cached,
            last_updated=result.last_updated,
        )


class NoStatsResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
