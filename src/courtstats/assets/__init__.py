"""Photo asset pipeline: download provider headshots into the blob store."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Mapping, Tuple

from courtstats.errors import StoreWriteFailure, UpstreamError
from courtstats.persistence import PLAYERS

if TYPE_CHECKING:
    from courtstats.pipeline.context import AppContext


logger = logging.getLogger(__name__)

PHOTO_PREFIX = "player_photos"


@dataclass(frozen=True)
class BlobRef:
    source: str
    provider_id: str
    path: str
    url: str


@dataclass
class BatchReport:
    succeeded: List[BlobRef] = field(default_factory=list)
    failed: List[Tuple[str, str, str]] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)


def blob_path(source: str, provider_id: str) -> str:
    """Deterministic storage path; re-runs overwrite the same object."""

    return f"{PHOTO_PREFIX}/{source}/{provider_id}.png"


class AssetPipeline:
    def __init__(self, context: "AppContext"):
        self.context = context

    async def fetch_and_store(self, source: str, provider_id: str) -> BlobRef:
        """Download one headshot, store it publicly and link it to matching players.

        Raises ``KeyError`` for a source without a photo CDN, ``UpstreamError``
        when the download fails and ``StoreWriteFailure`` when saving fails.
        """

        adapter = self.context.photo_adapters.get(source)
        if adapter is None:
            raise KeyError(f"No photo source configured for {source!r}")
        data, content_type = await adapter.fetch_photo(provider_id)
        path = blob_path(source, provider_id)
        url = self.context.blobs.save(path, data, content_type, public=True)

        store = self.context.store
        linked = 0
        for player_id, _ in store.query(PLAYERS, f"providerIds.{source}", provider_id):
            store.set(PLAYERS, player_id, {"photoRefs": {source: url}})
            linked += 1
        logger.info("Stored %s photo for %s at %s (linked to %d players)", source, provider_id, path, linked)
        return BlobRef(source=source, provider_id=provider_id, path=path, url=url)

    async def fetch_batch(self, pairs: Iterable[Tuple[str, str]]) -> BatchReport:
        report = BatchReport()
        delay = self.context.settings.batch_delay
        first = True
        for source, provider_id in pairs:
            if not provider_id or source not in self.context.photo_adapters:
                report.skipped.append((source, provider_id))
                continue
            if not first and delay > 0:
                await asyncio.sleep(delay)
            first = False
            try:
                report.succeeded.append(await self.fetch_and_store(source, provider_id))
            except (UpstreamError, StoreWriteFailure) as exc:
                logger.warning("Photo fetch failed for %s:%s: %s", source, provider_id, exc)
                report.failed.append((source, provider_id, str(exc)))
        logger.info(
            "Photo batch finished: %d stored, %d failed, %d skipped",
            len(report.succeeded),
            len(report.failed),
            len(report.skipped),
        )
        return report


def roster_photo_pairs(context: "AppContext") -> List[Tuple[str, str]]:
    """``(source, provider_id)`` pairs for every stored player with a photo-capable id."""

    pairs: List[Tuple[str, str]] = []
    seen = set()
    for _, document in context.store.list(PLAYERS):
        provider_ids = document.get("providerIds")
        if not isinstance(provider_ids, Mapping):
            continue
        for source in context.photo_adapters:
            value = provider_ids.get(source)
            if value and (source, value) not in seen:
                seen.add((source, value))
                pairs.append((source, str(value)))
    return pairs


__all__ = ["AssetPipeline", "BatchReport", "BlobRef", "blob_path", "roster_photo_pairs"]
