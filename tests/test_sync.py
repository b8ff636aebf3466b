import httpx
import pytest

from courtstats.identity import sync_provider_ids
from courtstats.persistence import PLAYERS
from courtstats.pipeline import refresh_all

from tests.fakes import PNG_BYTES, SleepRecorder, nba_index_payload, only_sources


@pytest.mark.anyio
async def test_sync_provider_ids_matches_roster_against_index(make_context):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(
            200,
            json=nba_index_payload([(1629029, "Luka Doncic"), (2544, "LeBron James"), (203999, "Nikola Jokic")]),
        )

    context = make_context(handler, disabled_sources=only_sources("nba_stats"))
    context.store.set(PLAYERS, "luka", {"displayName": "Luka Dončić"})
    context.store.set(PLAYERS, "lebron", {"strPlayer": "LeBron James"})
    context.store.set(PLAYERS, "joker", {"displayName": "Nikola Jokić", "providerIds": {"nba_stats": "203999"}})
    context.store.set(PLAYERS, "ghost", {"displayName": "Nobody Here"})
    context.store.set(PLAYERS, "blank", {})

    report = await sync_provider_ids(context, "nba_stats")

    assert sorted(report.matched) == [("lebron", "2544"), ("luka", "1629029")]
    assert report.unmatched == ["Nobody Here"]
    assert report.skipped == 2
    assert calls == ["/stats/commonallplayers"]
    assert context.store.get(PLAYERS, "luka")["providerIds"] == {"nba_stats": "1629029"}
    assert context.store.get(PLAYERS, "lebron")["strPlayer"] == "LeBron James"


@pytest.mark.anyio
async def test_sync_provider_ids_unknown_source(make_context):
    context = make_context(lambda request: httpx.Response(500), disabled_sources=only_sources("nba_stats"))
    with pytest.raises(KeyError):
        await sync_provider_ids(context, "espn")


@pytest.mark.anyio
async def test_sync_provider_ids_skips_unreadable_documents(make_context):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=nba_index_payload([(2544, "LeBron James")]))

    context = make_context(handler, disabled_sources=only_sources("nba_stats"))
    context.store.set(PLAYERS, "broken", {"displayName": None})
    context.store.set(PLAYERS, "lebron", {"displayName": "LeBron James"})

    report = await sync_provider_ids(context, "nba_stats")

    assert report.matched == [("lebron", "2544")]
    assert report.skipped == 1
    assert context.store.get(PLAYERS, "broken") == {"displayName": None}


@pytest.mark.anyio
async def test_refresh_runs_photo_batch_past_unreadable_documents(make_context):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "cdn.nba.com":
            return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})
        return httpx.Response(200, json=nba_index_payload([(2544, "LeBron James")]))

    context = make_context(handler, disabled_sources=only_sources("nba_stats"))
    context.store.set(PLAYERS, "broken", {"displayName": None})
    context.store.set(PLAYERS, "lebron", {"displayName": "LeBron James"})

    report = await refresh_all(context)

    assert report.sync["nba_stats"].matched == [("lebron", "2544")]
    assert [(ref.source, ref.provider_id) for ref in report.photos.succeeded] == [("nba_stats", "2544")]


@pytest.mark.anyio
async def test_live_search_sync_pauses_between_searches(make_context, monkeypatch):
    recorder = SleepRecorder(0.25)
    monkeypatch.setattr("courtstats.identity.sync.asyncio.sleep", recorder)
    searched = []

    def handler(request: httpx.Request) -> httpx.Response:
        query = request.url.params["query"]
        searched.append(query)
        items = [{"id": 1966, "displayName": "LeBron James", "league": "nba"}] if query == "LeBron James" else []
        return httpx.Response(200, json={"items": items})

    context = make_context(handler, disabled_sources=only_sources("espn"), batch_delay=0.25)
    context.store.set(PLAYERS, "lebron", {"displayName": "LeBron James"})
    context.store.set(PLAYERS, "curry", {"displayName": "Stephen Curry"})
    context.store.set(PLAYERS, "known", {"displayName": "Kevin Durant", "providerIds": {"espn": "3202"}})
    context.store.set(PLAYERS, "ghost", {"displayName": "Nobody Here"})

    report = await sync_provider_ids(context, "espn")

    assert len(searched) == 3
    assert report.matched == [("lebron", "1966")]
    assert report.skipped == 1
    assert recorder.calls == [0.25, 0.25]


@pytest.mark.anyio
async def test_index_sync_does_not_pause(make_context, monkeypatch):
    recorder = SleepRecorder(0.25)
    monkeypatch.setattr("courtstats.identity.sync.asyncio.sleep", recorder)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=nba_index_payload([(2544, "LeBron James"), (201939, "Stephen Curry")]))

    context = make_context(handler, disabled_sources=only_sources("nba_stats"), batch_delay=0.25)
    context.store.set(PLAYERS, "lebron", {"displayName": "LeBron James"})
    context.store.set(PLAYERS, "curry", {"displayName": "Stephen Curry"})
    context.store.set(PLAYERS, "ghost", {"displayName": "Nobody Here"})

    report = await sync_provider_ids(context, "nba_stats")

    assert len(report.matched) == 2
    assert recorder.calls == []
