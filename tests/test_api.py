import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from courtstats.api import create_app
from courtstats.errors import StoreWriteFailure
from courtstats.persistence import PLAYER_STATS, PLAYERS, SQLiteDocumentStore

from tests.fakes import PNG_BYTES, nba_career_payload, nba_index_payload, only_sources


def _upstream(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.endswith("/commonallplayers"):
        return httpx.Response(200, json=nba_index_payload([(2544, "LeBron James")]))
    if path.endswith("/playercareerstats"):
        if request.url.params["PlayerID"] == "0":
            return httpx.Response(500)
        return httpx.Response(
            200,
            json=nba_career_payload(
                [{"SEASON_ID": "2019-20", "TEAM_ABBREVIATION": "LAL", "PTS": 25.3, "FG_PCT": 0.493, "FG3_PCT": 0.348}]
            ),
        )
    if request.url.host == "cdn.nba.com":
        return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})
    return httpx.Response(500)


def _client(context) -> AsyncClient:
    app = create_app(context)
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.anyio
async def test_health(make_context):
    async with _client(make_context(_upstream)) as client:
        resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.anyio
async def test_stats_requires_id(make_context):
    async with _client(make_context(_upstream)) as client:
        resp = await client.get("/stats")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing 'id' parameter"}


@pytest.mark.anyio
async def test_stats_without_any_data_is_not_an_error(make_context):
    context = make_context(_upstream, disabled_sources=only_sources("nba_stats"))
    async with _client(context) as client:
        resp = await client.get("/stats", params={"id": "p1", "nba_stats": "0"})
    assert resp.status_code == 200
    assert resp.json() == {"message": "no stats available"}


@pytest.mark.anyio
async def test_stats_returns_camel_case_history(make_context):
    context = make_context(_upstream, disabled_sources=only_sources("nba_stats"))
    async with _client(context) as client:
        resp = await client.get("/stats", params={"id": "p1", "nba_stats": "2544"})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["playerId"] == "p1"
    assert payload["allSeasonAverages"]["2019-20"]["ppg"] == 25.3
    assert payload["allSeasonAverages"]["2019-20"]["fg3Pct"] == 0.348
    assert payload["allSeasonAverages"]["2019-20"]["sources"]["ppg"] == "nba_stats"
    assert payload["sources"] == [{"source": "nba_stats", "status": "ok", "lines": 1, "error": None}]
    assert payload["recentGames"] == []
    assert payload["cached"] is False


@pytest.mark.anyio
async def test_stats_resolves_by_name(make_context):
    context = make_context(_upstream, disabled_sources=only_sources("nba_stats"))
    async with _client(context) as client:
        resp = await client.get("/stats", params={"id": "p7", "name": "LeBron James"})
    assert resp.status_code == 200
    assert resp.json()["allSeasonAverages"]["2019-20"]["ppg"] == 25.3
    assert context.store.get(PLAYERS, "p7")["providerIds"] == {"nba_stats": "2544"}


class _FailingStatsStore(SQLiteDocumentStore):
    def set(self, collection, doc_id, partial, merge=True):
        if collection == PLAYER_STATS:
            raise StoreWriteFailure("failed to write player_stats: read-only")
        super().set(collection, doc_id, partial, merge)


@pytest.mark.anyio
async def test_stats_store_failure_returns_500_with_result(make_context, settings):
    store = _FailingStatsStore(settings.db_path)
    context = make_context(_upstream, store=store, disabled_sources=only_sources("nba_stats"))
    async with _client(context) as client:
        resp = await client.get("/stats", params={"id": "p1", "nba_stats": "2544"})
    assert resp.status_code == 500
    payload = resp.json()
    assert payload["error"] == "failed to write player_stats: read-only"
    assert payload["allSeasonAverages"]["2019-20"]["ppg"] == 25.3


@pytest.mark.anyio
async def test_fetch_photo_endpoint(make_context):
    context = make_context(_upstream)
    context.store.set(PLAYERS, "p1", {"providerIds": {"nba_stats": "2544"}})
    async with _client(context) as client:
        resp = await client.post("/photos/nba_stats/2544")
        missing = await client.post("/photos/bbref/jamesle01")
        failed = await client.post("/photos/espn/1966")
    assert resp.status_code == 200
    assert resp.json() == {
        "source": "nba_stats",
        "providerId": "2544",
        "path": "player_photos/nba_stats/2544.png",
        "url": "http://testserver/blobs/player_photos/nba_stats/2544.png",
    }
    assert context.store.get(PLAYERS, "p1")["photoRefs"]["nba_stats"] == resp.json()["url"]
    assert missing.status_code == 404
    assert failed.status_code == 502


@pytest.mark.anyio
async def test_player_created_event(make_context):
    context = make_context(_upstream, disabled_sources=only_sources("nba_stats"))
    context.store.set(PLAYERS, "p1", {"displayName": "LeBron James"})
    async with _client(context) as client:
        resp = await client.post("/events/player-created", json={"playerId": "p1", "displayName": "LeBron James"})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["playerId"] == "p1"
    assert payload["actions"][0]["action"] == "resolve_identity"
    assert payload["actions"][0]["ok"] is True
    assert context.store.get(PLAYERS, "p1")["photoRefs"]["nba_stats"].endswith("/2544.png")


@pytest.mark.anyio
async def test_refresh_endpoint(make_context):
    context = make_context(_upstream, disabled_sources=only_sources("nba_stats"))
    context.store.set(PLAYERS, "p1", {"displayName": "LeBron James"})
    context.store.set(PLAYERS, "p2", {"displayName": "Nobody Here"})
    async with _client(context) as client:
        resp = await client.post("/refresh")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["sync"]["nba_stats"]["matched"] == 1
    assert payload["sync"]["nba_stats"]["unmatched"] == ["Nobody Here"]
    assert [item["providerId"] for item in payload["photos"]["succeeded"]] == ["2544"]
