from __future__ import annotations

from typing import Dict, List

from pydantic import Field

from .stats import CamelResponse


class BlobRefResponse(CamelResponse):
    source: str
    provider_id: str
    path: str
    url: str


class FailedItemResponse(CamelResponse):
    source: str
    provider_id: str
    error: str | None = None


class BatchReportResponse(CamelResponse):
    succeeded: List[BlobRefResponse] = Field(default_factory=list)
    failed: List[FailedItemResponse] = Field(default_factory=list)
    skipped: List[FailedItemResponse] = Field(default_factory=list)


class ActionOutcomeResponse(CamelResponse):
    action: str
    source: str
    ok: bool
    detail: str | None = None


class PlayerCreatedResponse(CamelResponse):
    player_id: str
    actions: List[ActionOutcomeResponse] = Field(default_factory=list)


class SyncReportResponse(CamelResponse):
    source: str
    matched: int
    unmatched: List[str] = Field(default_factory=list)
    skipped: int = 0


class RefreshResponse(CamelResponse):
    sync: Dict[str, SyncReportResponse] = Field(default_factory=dict)
    photos: BatchReportResponse | None = None
