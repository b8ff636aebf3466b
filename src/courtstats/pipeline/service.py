"""Stats request flow: cache check, resolution, fan-out, merge, projection, write-back."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from courtstats.errors import (
    MissingIdentifier,
    PartialSourceFailure,
    StoreWriteFailure,
    UpstreamError,
)
from courtstats.identity import IdentityResolver
from courtstats.ingest import SourceAdapter
from courtstats.merge import build_history, current_season_label
from courtstats.models import CacheEntry, MergedStatLine, Player, ProjectedStatLine, RecentGame, SeasonStatLine
from courtstats.persistence import PLAYER_STATS, PLAYERS
from courtstats.projection import project

from .context import AppContext


logger = logging.getLogger(__name__)

NO_STATS_MESSAGE = "no stats available"


@dataclass
class StatsRequest:
    player_id: Optional[str]
    provider_ids: Dict[str, str] = field(default_factory=dict)
    display_name: Optional[str] = None
    refresh: bool = False


@dataclass
class SourceStatus:
    source: str
    status: str
    lines: int = 0
    error: Optional[str] = None


@dataclass
class StatsResult:
    player_id: str
    season: str
    season_averages: Optional[MergedStatLine]
    projections: Optional[ProjectedStatLine]
    all_season_averages: Dict[str, MergedStatLine]
    recent_games: List[RecentGame] = field(default_factory=list)
    sources: List[SourceStatus] = field(default_factory=list)
    cached: bool = False
    last_updated: Optional[datetime] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatsService:
    """Serve merged stats for one player, from cache or from the providers."""

    def __init__(self, context: AppContext, *, clock: Callable[[], datetime] = _utcnow):
        self.context = context
        self.clock = clock
        self._inflight: Dict[Tuple[str, bool], asyncio.Task] = {}

    async def get_stats(self, request: StatsRequest) -> Optional[StatsResult]:
        """Return the stats result, or ``None`` when no source and no cache has data.

        Raises :class:`MissingIdentifier` without a player id and
        :class:`StoreWriteFailure` (carrying the computed result) when the
        write-back fails.

        Concurrent calls for the same player and ``refresh`` flag share one run;
        a joining call gets the result of the first call's provider ids and
        display name. A refresh call never joins a cache-serving run.
        """

        player_id = (request.player_id or "").strip()
        if not player_id:
            raise MissingIdentifier("Missing 'id' parameter")

        key = (player_id, request.refresh)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(player_id, request))
            self._inflight[key] = task

            def _release(done: asyncio.Task, key: Tuple[str, bool] = key) -> None:
                if self._inflight.get(key) is done:
                    del self._inflight[key]

            task.add_done_callback(_release)
        else:
            logger.debug("Joining in-flight stats run for %s (refresh=%s)", player_id, request.refresh)
        return await asyncio.shield(task)

    def _load_cache(self, player_id: str) -> Optional[CacheEntry]:
        document = self.context.store.get(PLAYER_STATS, player_id)
        if not document:
            return None
        try:
            return CacheEntry.from_document(document)
        except ValidationError as exc:
            logger.warning("Ignoring unreadable cache entry for %s: %s", player_id, exc)
            return None

    def _is_fresh(self, entry: CacheEntry, now: datetime) -> bool:
        ttl = self.context.settings.cache_ttl
        if ttl <= 0 or entry.last_updated is None:
            return False
        last_updated = entry.last_updated
        if last_updated.tzinfo is None:
            last_updated = last_updated.replace(tzinfo=timezone.utc)
        return now - last_updated < timedelta(seconds=ttl)

    def _load_player(self, player_id: str, request: StatsRequest) -> Player:
        store = self.context.store
        document = store.get(PLAYERS, player_id)
        if document is None:
            player = Player(player_id=player_id, display_name=request.display_name or "")
        else:
            try:
                player = Player.from_document(player_id, document)
            except ValidationError as exc:
                logger.warning("Ignoring unreadable player document %s: %s", player_id, exc)
                player = Player(player_id=player_id, display_name=request.display_name or "")
            if request.display_name and not player.display_name:
                player.display_name = request.display_name
        supplied = {source: value for source, value in request.provider_ids.items() if value}
        player.provider_ids.update(supplied)
        if document is None or supplied:
            try:
                store.set(PLAYERS, player_id, player.to_document())
            except StoreWriteFailure as exc:
                logger.warning("Could not record player %s: %s", player_id, exc)
        return player

    async def _resolve_missing(self, player: Player, statuses: Dict[str, SourceStatus]) -> Dict[str, str]:
        adapters = self.context.adapters
        ids = {source: value for source, value in player.provider_ids.items() if source in adapters}
        missing = {source: adapter for source, adapter in adapters.items() if source not in ids}
        if not missing:
            return ids
        if not player.display_name:
            for source in missing:
                statuses[source] = SourceStatus(source=source, status="unresolved", error="no display name")
            return ids

        resolver = IdentityResolver(missing)
        resolved: Dict[str, str] = {}
        for source in missing:
            provider_id = await resolver.resolve(player.display_name, source)
            if provider_id is None:
                statuses[source] = SourceStatus(source=source, status="unresolved")
                continue
            resolved[source] = provider_id.value
        if resolved:
            ids.update(resolved)
            try:
                self.context.store.set(PLAYERS, player.player_id, {"providerIds": resolved})
            except StoreWriteFailure as exc:
                logger.warning("Could not persist provider ids for %s: %s", player.player_id, exc)
        return ids

    async def _fetch_source(
        self,
        adapter: SourceAdapter,
        provider_id: str,
        semaphore: asyncio.Semaphore,
    ) -> Tuple[List[SeasonStatLine], List[RecentGame], SourceStatus]:
        # Each upstream request carries its own timeout; multi-request sources keep what they collected.
        source = adapter.source
        async with semaphore:
            try:
                if not adapter.merges_seasons:
                    games = await adapter.fetch_recent_games(provider_id)
                    return [], games, SourceStatus(source=source, status="ok" if games else "empty", lines=len(games))
                lines = await adapter.fetch_season_lines(provider_id)
            except UpstreamError as exc:
                failure = PartialSourceFailure(source, str(exc))
            except Exception as exc:  # parse bugs on unexpected markup count as "no data"
                logger.exception("Unexpected error extracting %s stats for %s", source, provider_id)
                failure = PartialSourceFailure(source, f"{type(exc).__name__}: {exc}")
            else:
                status = "ok" if lines else "empty"
                return lines, [], SourceStatus(source=source, status=status, lines=len(lines))
        logger.warning("%s", failure)
        return [], [], SourceStatus(source=source, status="failed", error=failure.reason)

    async def _fan_out(
        self,
        ids: Mapping[str, str],
        statuses: Dict[str, SourceStatus],
    ) -> Tuple[List[SeasonStatLine], List[RecentGame]]:
        semaphore = asyncio.Semaphore(self.context.settings.max_concurrency)
        jobs = []
        for source, adapter in self.context.adapters.items():
            provider_id = ids.get(source)
            if not provider_id:
                continue
            jobs.append(self._fetch_source(adapter, provider_id, semaphore))

        lines: List[SeasonStatLine] = []
        games: List[RecentGame] = []
        for source_lines, source_games, status in await asyncio.gather(*jobs):
            lines.extend(source_lines)
            games.extend(source_games)
            statuses[status.source] = status
        return lines, games

    def _result_from_cache(
        self,
        entry: CacheEntry,
        season: str,
        statuses: List[SourceStatus],
    ) -> StatsResult:
        return StatsResult(
            player_id=entry.player_id,
            season=season,
            season_averages=entry.seasons.get(season),
            projections=entry.projection if entry.seasons.get(season) else None,
            all_season_averages=dict(entry.seasons),
            recent_games=list(entry.recent_games),
            sources=statuses,
            cached=True,
            last_updated=entry.last_updated,
        )

    async def _run(self, player_id: str, request: StatsRequest) -> Optional[StatsResult]:
        now = self.clock()
        season = current_season_label(now.date())
        cached = self._load_cache(player_id)
        if cached is not None and not request.refresh and self._is_fresh(cached, now):
            logger.info("Serving cached stats for %s", player_id)
            return self._result_from_cache(cached, season, [])

        player = self._load_player(player_id, request)
        statuses: Dict[str, SourceStatus] = {}
        ids = await self._resolve_missing(player, statuses)
        lines, games = await self._fan_out(ids, statuses)
        ordered_statuses = [statuses[source] for source in self.context.adapters if source in statuses]

        if not lines and not games:
            if cached is not None:
                logger.warning("All sources failed for %s; serving stale cache", player_id)
                return self._result_from_cache(cached, season, ordered_statuses)
            logger.warning("No stats available for %s", player_id)
            return None

        history = build_history(lines, cached.seasons if cached else None)
        current = history.get(season)
        settings = self.context.settings
        projection = project(
            current,
            growth_factor=settings.growth_factor,
            pct_floor=settings.pct_floor,
            pct_ceiling=settings.pct_ceiling,
        )
        if not games and cached is not None:
            games = list(cached.recent_games)
        entry = CacheEntry(
            player_id=player_id,
            seasons=history,
            projection=projection,
            recent_games=games,
            last_updated=now,
        )
        result = StatsResult(
            player_id=player_id,
            season=season,
            season_averages=current,
            projections=projection,
            all_season_averages=history,
            recent_games=games,
            sources=ordered_statuses,
            cached=False,
            last_updated=now,
        )
        logger.info(
            "Merged %d lines into %d seasons for %s (%s)",
            len(lines),
            len(history),
            player_id,
            ", ".join(f"{status.source}={status.status}" for status in ordered_statuses),
        )
        try:
            self.context.store.set(PLAYER_STATS, player_id, entry.to_document(), merge=True)
        except StoreWriteFailure as exc:
            logger.error("Failed to cache stats for %s: %s", player_id, exc)
            raise StoreWriteFailure(exc.message, result=result) from exc
        return result
