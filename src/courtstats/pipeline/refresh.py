"""Scheduled maintenance: roster id sync followed by the photo batch."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from courtstats.assets import AssetPipeline, BatchReport, roster_photo_pairs
from courtstats.identity import SyncReport, sync_provider_ids

from .context import AppContext


logger = logging.getLogger(__name__)


@dataclass
class RefreshReport:
    sync: Dict[str, SyncReport] = field(default_factory=dict)
    photos: Optional[BatchReport] = None


async def refresh_all(context: AppContext) -> RefreshReport:
    report = RefreshReport()
    for source in context.adapters:
        report.sync[source] = await sync_provider_ids(context, source)
    pairs = roster_photo_pairs(context)
    report.photos = await AssetPipeline(context).fetch_batch(pairs)
    logger.info(
        "Refresh finished: %d sources synced, %d photos stored",
        len(report.sync),
        len(report.photos.succeeded),
    )
    return report
