"""Player-created trigger modelled as a pure handler plus an executor."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Union

from courtstats.assets import AssetPipeline
from courtstats.config import SourceConfig, enabled_sources
from courtstats.errors import StoreWriteFailure, UpstreamError
from courtstats.identity import IdentityResolver
from courtstats.models import Player
from courtstats.persistence import PLAYERS

from .context import AppContext


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolveIdentity:
    player_id: str
    source: str
    display_name: str
    fetch_photo: bool = False


@dataclass(frozen=True)
class FetchPhoto:
    source: str
    provider_id: str


PipelineAction = Union[ResolveIdentity, FetchPhoto]


@dataclass
class ActionOutcome:
    action: PipelineAction
    ok: bool
    detail: Optional[str] = None


def on_player_created(player: Player, sources: Sequence[SourceConfig]) -> List[PipelineAction]:
    """Return the follow-up work for a newly created player document.

    Sources with a known id and a photo CDN get a ``FetchPhoto``; sources with no
    id get a ``ResolveIdentity`` (which fetches the photo once resolved). Nothing
    is executed here.
    """

    actions: List[PipelineAction] = []
    for source in sources:
        has_cdn = bool(source.photo_url_template)
        provider_id = player.provider_ids.get(source.key)
        if provider_id:
            if has_cdn and source.key not in player.photo_refs:
                actions.append(FetchPhoto(source=source.key, provider_id=provider_id))
        elif player.display_name:
            actions.append(
                ResolveIdentity(
                    player_id=player.player_id,
                    source=source.key,
                    display_name=player.display_name,
                    fetch_photo=has_cdn,
                )
            )
    return actions


async def apply_actions(context: AppContext, actions: Iterable[PipelineAction]) -> List[ActionOutcome]:
    """Execute actions in order, recording failures instead of stopping."""

    assets = AssetPipeline(context)
    resolver = IdentityResolver(context.adapters)
    delay = context.settings.batch_delay
    outcomes: List[ActionOutcome] = []

    for index, action in enumerate(actions):
        if index and delay > 0:
            await asyncio.sleep(delay)
        try:
            if isinstance(action, FetchPhoto):
                ref = await assets.fetch_and_store(action.source, action.provider_id)
                outcomes.append(ActionOutcome(action, True, ref.url))
                continue

            resolved = await resolver.resolve(action.display_name, action.source)
            if resolved is None:
                outcomes.append(ActionOutcome(action, False, "unresolved"))
                continue
            context.store.set(PLAYERS, action.player_id, {"providerIds": {action.source: resolved.value}})
            detail = resolved.value
            if action.fetch_photo and action.source in context.photo_adapters:
                ref = await assets.fetch_and_store(action.source, resolved.value)
                detail = ref.url
            outcomes.append(ActionOutcome(action, True, detail))
        except (KeyError, UpstreamError, StoreWriteFailure) as exc:
            logger.warning("Action %r failed: %s", action, exc)
            outcomes.append(ActionOutcome(action, False, str(exc)))
    return outcomes


async def handle_player_created(context: AppContext, player: Player) -> List[ActionOutcome]:
    actions = on_player_created(player, enabled_sources(context.settings))
    logger.info("Player %s created; %d follow-up actions", player.player_id, len(actions))
    return await apply_actions(context, actions)
