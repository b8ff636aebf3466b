"""Provider adapters: transport, headers and payload shape per source."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict, List, Mapping, Tuple

import httpx
from bs4 import BeautifulSoup

from courtstats.config import (
    BALLDONTLIE,
    BBREF,
    ESPN,
    NBA_STATS,
    SPORTSDB,
    Settings,
    SourceConfig,
    enabled_sources,
    get_source,
)
from courtstats.errors import UpstreamError, UpstreamMalformed, UpstreamTimeout
from courtstats.identity.resolver import IndexEntry
from courtstats.merge.seasons import current_season_label, season_start_year
from courtstats.models import RawRecord, RecentGame, SeasonStatLine

from .extract import (
    build_line,
    extract_embedded_json,
    extract_html_table,
    parse_number,
    rows_from_result_set,
)


logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120 Safari/537.36"
    ),
    "Accept": "application/json, text/plain, */*",
}


class SourceAdapter:
    """Base adapter; subclasses implement the capabilities their provider offers."""

    def __init__(self, source: str, client: httpx.AsyncClient, settings: Settings):
        self.source = source
        self.config: SourceConfig = get_source(source)
        self.lookup = self.config.lookup
        self.client = client
        self.settings = settings

    def __repr__(self) -> str:
        return f"{type(self).__name__}(source={self.source!r})"

    @property
    def merges_seasons(self) -> bool:
        """Whether this source feeds the season merge or only recent games."""

        return self.config.merges_seasons

    async def _get(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        timeout = self.settings.request_timeout
        try:
            response = await asyncio.wait_for(
                self.client.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=timeout,
                    follow_redirects=True,
                ),
                timeout,
            )
            response.raise_for_status()
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            raise UpstreamTimeout(self.source, f"timed out fetching {url}") from exc
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(self.source, f"HTTP {exc.response.status_code} from {url}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(self.source, f"request to {url} failed: {exc}") from exc
        return response

    async def _get_json(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        response = await self._get(url, params=params, headers=headers)
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamMalformed(self.source, f"non-JSON response from {url}") from exc

    async def load_index(self) -> List[IndexEntry]:
        return []

    async def search(self, name: str) -> List[IndexEntry]:
        return []

    async def fetch_raw_stats(self, provider_id: str) -> RawRecord:
        raise NotImplementedError(f"{self.source} does not provide season stats")

    def extract(self, raw: RawRecord) -> List[SeasonStatLine]:
        raise NotImplementedError(f"{self.source} does not provide season stats")

    async def fetch_season_lines(self, provider_id: str) -> List[SeasonStatLine]:
        raw = await self.fetch_raw_stats(provider_id)
        return self.extract(raw)

    async def fetch_recent_games(self, provider_id: str, *, limit: int = 5) -> List[RecentGame]:
        return []


class NbaStatsAdapter(SourceAdapter):
    """stats.nba.com: league-wide player index and per-athlete career stats."""

    BASE_URL = "https://stats.nba.com/stats"
    HEADERS = {
        **BROWSER_HEADERS,
        "Referer": "https://www.nba.com",
        "Origin": "https://www.nba.com",
        "Connection": "keep-alive",
    }
    FIELD_MAP = {
        "ppg": "PTS",
        "rpg": "REB",
        "apg": "AST",
        "spg": "STL",
        "bpg": "BLK",
        "topg": "TOV",
        "fg_pct": "FG_PCT",
        "fg3_pct": "FG3_PCT",
        "ft_pct": "FT_PCT",
    }

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        super().__init__(NBA_STATS, client, settings)

    async def load_index(self) -> List[IndexEntry]:
        payload = await self._get_json(
            f"{self.BASE_URL}/commonallplayers",
            params={
                "LeagueID": "00",
                "Season": current_season_label(),
                "IsOnlyCurrentSeason": "0",
            },
            headers=self.HEADERS,
        )
        rows = rows_from_result_set(payload)
        if not rows and not (isinstance(payload, Mapping) and "resultSets" in payload):
            raise UpstreamMalformed(self.source, "player index without resultSets")
        entries = []
        for row in rows:
            name = row.get("DISPLAY_FIRST_LAST")
            person_id = row.get("PERSON_ID")
            if name and person_id is not None:
                entries.append(IndexEntry(title=str(name), provider_id=str(person_id)))
        return entries

    async def fetch_raw_stats(self, provider_id: str) -> RawRecord:
        payload = await self._get_json(
            f"{self.BASE_URL}/playercareerstats",
            params={"PlayerID": provider_id, "PerMode": "PerGame", "LeagueID": "00"},
            headers=self.HEADERS,
        )
        return RawRecord(source=self.source, provider_id=provider_id, payload=payload)

    def extract(self, raw: RawRecord) -> List[SeasonStatLine]:
        rows = rows_from_result_set(raw.payload, "SeasonTotalsRegularSeason")
        # Traded players get one row per team plus a combined "TOT" row.
        chosen: Dict[str, Mapping[str, Any]] = {}
        for row in rows:
            season = row.get("SEASON_ID")
            if season is None:
                continue
            if season not in chosen or row.get("TEAM_ABBREVIATION") == "TOT":
                chosen[season] = row
        lines = []
        for season, row in chosen.items():
            line = build_line(self.source, season, row, self.FIELD_MAP)
            if line is not None:
                lines.append(line)
        return lines


class EspnAdapter(SourceAdapter):
    """ESPN: live player search and scraped player stats pages."""

    SEARCH_URL = "https://site.web.api.espn.com/apis/common/v3/search"
    STATS_URL = "https://www.espn.com/nba/player/stats/_/id/{provider_id}"
    STATS_LABEL = "seasonAverages"
    FIELD_MAP = {
        "ppg": ("ppg", "avgPoints"),
        "rpg": ("rpg", "avgRebounds"),
        "apg": ("apg", "avgAssists"),
        "spg": ("spg", "avgSteals"),
        "bpg": ("bpg", "avgBlocks"),
        "topg": ("topg", "avgTurnovers"),
        "fg_pct": ("fgPct", "fieldGoalPct"),
        "fg3_pct": ("fg3Pct", "threePointPct"),
        "ft_pct": ("ftPct", "freeThrowPct"),
    }

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        super().__init__(ESPN, client, settings)

    async def search(self, name: str) -> List[IndexEntry]:
        try:
            payload = await self._get_json(
                self.SEARCH_URL,
                params={"query": name, "type": "player", "limit": 10},
                headers=BROWSER_HEADERS,
            )
        except UpstreamMalformed as exc:
            logger.warning("ESPN search for %r returned no usable result: %s", name, exc)
            return []
        items = payload.get("items") if isinstance(payload, Mapping) else None
        if not isinstance(items, list):
            return []
        entries = []
        for item in items:
            if not isinstance(item, Mapping):
                continue
            league = str(item.get("league") or "nba").lower()
            if league != "nba":
                continue
            title = item.get("displayName")
            provider_id = item.get("id")
            if title and provider_id is not None:
                entries.append(IndexEntry(title=str(title), provider_id=str(provider_id)))
        return entries

    async def fetch_raw_stats(self, provider_id: str) -> RawRecord:
        headers = {**BROWSER_HEADERS, "Accept": "text/html,application/xhtml+xml,*/*;q=0.8"}
        response = await self._get(self.STATS_URL.format(provider_id=provider_id), headers=headers)
        return RawRecord(
            source=self.source,
            provider_id=provider_id,
            payload=response.text,
            content_type="text/html",
        )

    def extract(self, raw: RawRecord) -> List[SeasonStatLine]:
        fragment = extract_embedded_json(raw.payload or "", self.STATS_LABEL)
        if isinstance(fragment, Mapping):
            fragment = [fragment]
        if not isinstance(fragment, list):
            return []
        lines = []
        for record in fragment:
            if not isinstance(record, Mapping):
                continue
            # ESPN labels a season by the calendar year it ends in.
            line = build_line(self.source, record.get("season"), record, self.FIELD_MAP, year_is_end=True)
            if line is not None:
                lines.append(line)
        return lines


class BalldontlieAdapter(SourceAdapter):
    """balldontlie: player search and per-season averages."""

    BASE_URL = "https://api.balldontlie.io/v1"
    FIELD_MAP = {
        "ppg": "pts",
        "rpg": "reb",
        "apg": "ast",
        "spg": "stl",
        "bpg": "blk",
        "topg": "turnover",
        "fg_pct": "fg_pct",
        "fg3_pct": "fg3_pct",
        "ft_pct": "ft_pct",
    }

    def __init__(self, client: httpx.AsyncClient, settings: Settings, *, history_seasons: int = 2):
        super().__init__(BALLDONTLIE, client, settings)
        self.history_seasons = max(1, history_seasons)

    @property
    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.settings.balldontlie_api_key:
            headers["Authorization"] = self.settings.balldontlie_api_key
        return headers

    async def search(self, name: str) -> List[IndexEntry]:
        payload = await self._get_json(
            f"{self.BASE_URL}/players",
            params={"search": name, "per_page": 25},
            headers=self._headers,
        )
        data = payload.get("data") if isinstance(payload, Mapping) else None
        if not isinstance(data, list):
            raise UpstreamMalformed(self.source, "player search without data array")
        entries = []
        for player in data:
            if not isinstance(player, Mapping) or player.get("id") is None:
                continue
            title = f"{player.get('first_name') or ''} {player.get('last_name') or ''}".strip()
            entries.append(IndexEntry(title=title, provider_id=str(player["id"])))
        return entries

    async def fetch_raw_stats(self, provider_id: str) -> RawRecord:
        latest = season_start_year(current_season_label())
        records: List[Any] = []
        for start_year in range(latest, latest - self.history_seasons, -1):
            payload = await self._get_json(
                f"{self.BASE_URL}/season_averages",
                params={"season": start_year, "player_id": provider_id},
                headers=self._headers,
            )
            data = payload.get("data") if isinstance(payload, Mapping) else None
            if not isinstance(data, list):
                raise UpstreamMalformed(self.source, "season averages without data array")
            records.extend(data)
        return RawRecord(source=self.source, provider_id=provider_id, payload={"data": records})

    def extract(self, raw: RawRecord) -> List[SeasonStatLine]:
        lines = []
        for record in raw.payload.get("data", []):
            if not isinstance(record, Mapping):
                continue
            line = build_line(self.source, record.get("season"), record, self.FIELD_MAP)
            if line is not None:
                lines.append(line)
        return lines


class BbrefAdapter(SourceAdapter):
    """Basketball Reference: scraped search results and per-game history tables."""

    BASE_URL = "https://www.basketball-reference.com"
    HEADERS = {
        "User-Agent": BROWSER_HEADERS["User-Agent"],
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
    }
    TABLE_IDS = ("per_game_stats", "per_game")
    FIELD_MAP = {
        "ppg": ("pts_per_g", "pts"),
        "rpg": ("trb_per_g", "trb"),
        "apg": ("ast_per_g", "ast"),
        "spg": ("stl_per_g", "stl"),
        "bpg": ("blk_per_g", "blk"),
        "topg": ("tov_per_g", "tov"),
        "fg_pct": "fg_pct",
        "fg3_pct": "fg3_pct",
        "ft_pct": "ft_pct",
    }
    _PLAYER_HREF = re.compile(r"/players/[a-z]/([a-z0-9]+)\.html")
    _YEARS_SUFFIX = re.compile(r"\s*\([^)]*\)\s*$")

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        super().__init__(BBREF, client, settings)

    async def search(self, name: str) -> List[IndexEntry]:
        response = await self._get(
            f"{self.BASE_URL}/search/search.fcgi",
            params={"search": name},
            headers=self.HEADERS,
        )
        # A unique hit redirects straight to the player page.
        direct = self._PLAYER_HREF.search(response.url.path)
        soup = BeautifulSoup(response.text, "html.parser")
        if direct:
            heading = soup.find("h1")
            title = heading.get_text(" ", strip=True) if heading else name
            return [IndexEntry(title=title, provider_id=direct.group(1))]
        entries = []
        for item in soup.select("div.search-item-name a[href]"):
            match = self._PLAYER_HREF.search(item["href"])
            if not match:
                continue
            title = self._YEARS_SUFFIX.sub("", item.get_text(" ", strip=True))
            entries.append(IndexEntry(title=title, provider_id=match.group(1)))
        return entries

    async def fetch_raw_stats(self, provider_id: str) -> RawRecord:
        url = f"{self.BASE_URL}/players/{provider_id[:1]}/{provider_id}.html"
        response = await self._get(url, headers=self.HEADERS)
        return RawRecord(
            source=self.source,
            provider_id=provider_id,
            payload=response.text,
            content_type="text/html",
        )

    def extract(self, raw: RawRecord) -> List[SeasonStatLine]:
        rows: List[Dict[str, str]] = []
        for table_id in self.TABLE_IDS:
            rows = extract_html_table(raw.payload or "", table_id)
            if rows:
                break
        lines: Dict[str, SeasonStatLine] = {}
        for row in rows:
            season = row.get("year_id") or row.get("season")
            line = build_line(self.source, season, row, self.FIELD_MAP)
            # Multi-team seasons list the combined row first.
            if line is not None and line.season not in lines:
                lines[line.season] = line
        return list(lines.values())


class SportsDbAdapter(SourceAdapter):
    """TheSportsDB: recent events and per-event box scores."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        super().__init__(SPORTSDB, client, settings)

    @property
    def base_url(self) -> str:
        return f"https://www.thesportsdb.com/api/v1/json/{self.settings.sportsdb_api_key}"

    async def search(self, name: str) -> List[IndexEntry]:
        payload = await self._get_json(f"{self.base_url}/searchplayers.php", params={"p": name})
        players = payload.get("player") if isinstance(payload, Mapping) else None
        if not isinstance(players, list):
            return []
        entries = []
        for player in players:
            if not isinstance(player, Mapping):
                continue
            if player.get("strSport") not in (None, "Basketball"):
                continue
            if player.get("strPlayer") and player.get("idPlayer"):
                entries.append(IndexEntry(title=player["strPlayer"], provider_id=str(player["idPlayer"])))
        return entries

    async def fetch_recent_games(self, provider_id: str, *, limit: int = 5) -> List[RecentGame]:
        payload = await self._get_json(f"{self.base_url}/eventslast.php", params={"id": provider_id})
        events = payload.get("results") if isinstance(payload, Mapping) else None
        if not isinstance(events, list) or not events:
            logger.info("No recent events found for %s:%s", self.source, provider_id)
            return []

        games: List[RecentGame] = []
        for event in events[:limit]:
            event_id = event.get("idEvent") if isinstance(event, Mapping) else None
            if not event_id:
                continue
            try:
                stats = await self._get_json(f"{self.base_url}/lookupeventstats.php", params={"id": event_id})
            except UpstreamError as exc:
                logger.warning("Failed to fetch stats for event %s: %s", event_id, exc)
                continue
            lines = stats.get("eventstats") if isinstance(stats, Mapping) else None
            if not isinstance(lines, list):
                continue
            player_line = next(
                (line for line in lines if isinstance(line, Mapping) and str(line.get("idPlayer")) == provider_id),
                None,
            )
            if player_line is None:
                continue
            games.append(
                RecentGame(
                    date_event=event.get("dateEvent"),
                    event=event.get("strEvent"),
                    home_team=event.get("strHomeTeam"),
                    away_team=event.get("strAwayTeam"),
                    points=parse_number(player_line.get("intPoints")),
                    assists=parse_number(player_line.get("intAssists")),
                    rebounds=parse_number(player_line.get("intRebounds")),
                    blocks=parse_number(player_line.get("intBlocks")),
                    steals=parse_number(player_line.get("intSteals")),
                    minutes=parse_number(player_line.get("intMinutes")),
                )
            )
        logger.info("Fetched %d recent game lines for %s:%s", len(games), self.source, provider_id)
        return games


class PhotoCdnAdapter:
    """Downloads headshots from a provider CDN by constructed URL."""

    def __init__(self, source: str, client: httpx.AsyncClient, settings: Settings):
        config = get_source(source)
        if not config.photo_url_template:
            raise KeyError(f"Source {source!r} has no photo CDN configured")
        self.source = config.key
        self.url_template = config.photo_url_template
        self.client = client
        self.settings = settings

    def photo_url(self, provider_id: str) -> str:
        return self.url_template.format(provider_id=provider_id)

    async def fetch_photo(self, provider_id: str) -> Tuple[bytes, str]:
        url = self.photo_url(provider_id)
        timeout = self.settings.request_timeout
        try:
            response = await asyncio.wait_for(
                self.client.get(url, timeout=timeout, follow_redirects=True),
                timeout,
            )
            response.raise_for_status()
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            raise UpstreamTimeout(self.source, f"timed out fetching {url}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(self.source, f"photo download from {url} failed: {exc}") from exc
        content_type = response.headers.get("content-type", "image/png").split(";")[0].strip()
        if not content_type.startswith("image/"):
            raise UpstreamMalformed(self.source, f"expected an image from {url}, got {content_type}")
        return response.content, content_type


_ADAPTER_TYPES = {
    NBA_STATS: NbaStatsAdapter,
    ESPN: EspnAdapter,
    BALLDONTLIE: BalldontlieAdapter,
    BBREF: BbrefAdapter,
    SPORTSDB: SportsDbAdapter,
}


def build_adapters(settings: Settings, client: httpx.AsyncClient) -> Dict[str, SourceAdapter]:
    """Instantiate adapters for every enabled source, highest precedence first."""

    adapters: Dict[str, SourceAdapter] = {}
    for source in enabled_sources(settings):
        adapter_type = _ADAPTER_TYPES.get(source.key)
        if adapter_type is not None:
            adapters[source.key] = adapter_type(client, settings)
    return adapters


def build_photo_adapters(settings: Settings, client: httpx.AsyncClient) -> Dict[str, PhotoCdnAdapter]:
    return {
        source.key: PhotoCdnAdapter(source.key, client, settings)
        for source in enabled_sources(settings)
        if source.photo_url_template
    }
