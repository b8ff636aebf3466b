"""Request pipeline wiring adapters, merge, projection and persistence together."""

from .context import AppContext, build_context
from .events import (
    ActionOutcome,
    FetchPhoto,
    PipelineAction,
    ResolveIdentity,
    apply_actions,
    handle_player_created,
    on_player_created,
)
from .refresh import RefreshReport, refresh_all
from .service import NO_STATS_MESSAGE, SourceStatus, StatsRequest, StatsResult, StatsService

__all__ = [
    "AppContext",
    "build_context",
    "ActionOutcome",
    "FetchPhoto",
    "PipelineAction",
    "ResolveIdentity",
    "apply_actions",
    "handle_player_created",
    "on_player_created",
    "RefreshReport",
    "refresh_all",
    "NO_STATS_MESSAGE",
    "SourceStatus",
    "StatsRequest",
    "StatsResult",
    "StatsService",
]
