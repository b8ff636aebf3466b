"""Pydantic models for API I/O."""

from .assets import (
    ActionOutcomeResponse,
    BatchReportResponse,
    BlobRefResponse,
    FailedItemResponse,
    PlayerCreatedResponse,
    RefreshResponse,
    SyncReportResponse,
)
from .stats import ErrorResponse, NoStatsResponse, SourceStatusResponse, StatsResponse

__all__ = [
    "ActionOutcomeResponse",
    "BatchReportResponse",
    "BlobRefResponse",
    "FailedItemResponse",
    "PlayerCreatedResponse",
    "RefreshResponse",
    "SyncReportResponse",
    "ErrorResponse",
    "NoStatsResponse",
    "SourceStatusResponse",
    "StatsResponse",
]
