"""Batch assignment of provider ids to the stored roster."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Tuple

from pydantic import ValidationError

from courtstats.errors import StoreWriteFailure
from courtstats.models import Player
from courtstats.persistence import PLAYERS

from .resolver import IdentityResolver

if TYPE_CHECKING:
    from courtstats.pipeline.context import AppContext


logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    source: str
    matched: List[Tuple[str, str]] = field(default_factory=list)
    unmatched: List[str] = field(default_factory=list)
    skipped: int = 0


async def sync_provider_ids(context: "AppContext", source: str) -> SyncReport:
    """Resolve and store ``source`` ids for every player that lacks one."""

    adapter = context.adapters.get(source)
    if adapter is None:
        raise KeyError(f"Source {source!r} is not enabled")
    resolver = IdentityResolver({source: adapter})
    live_search = resolver.uses_live_search(source)
    delay = context.settings.batch_delay
    report = SyncReport(source=source)

    searched = 0
    for player_id, document in context.store.list(PLAYERS):
        try:
            player = Player.from_document(player_id, document)
        except ValidationError as exc:
            logger.warning("Skipping unreadable player document %s: %s", player_id, exc)
            report.skipped += 1
            continue
        if player.provider_id(source) is not None or not player.display_name:
            report.skipped += 1
            continue
        if live_search and searched and delay > 0:
            await asyncio.sleep(delay)
        searched += 1
        resolved = await resolver.resolve(player.display_name, source)
        if resolved is None:
            report.unmatched.append(player.display_name)
            continue
        try:
            context.store.set(PLAYERS, player_id, {"providerIds": {source: resolved.value}})
        except StoreWriteFailure as exc:
            logger.warning("Could not store %s for %s: %s", resolved, player_id, exc)
            report.unmatched.append(player.display_name)
            continue
        report.matched.append((player_id, resolved.value))

    logger.info(
        "Updated %d players with %s ids (%d unmatched, %d skipped)",
        len(report.matched),
        source,
        len(report.unmatched),
        report.skipped,
    )
    return report
