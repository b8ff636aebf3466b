from typing import List

import pytest

from courtstats.errors import UpstreamError
from courtstats.identity import IdentityResolver, IndexEntry, match_candidates


def _entries(*titles: str) -> List[IndexEntry]:
    return [IndexEntry(title=title, provider_id=str(index)) for index, title in enumerate(titles, start=1)]


def test_match_candidates_prefers_exact_match_listed_first():
    match = match_candidates("LeBron James", _entries("LeBron James", "LeBron James Jr."))
    assert match is not None
    entry, kind = match
    assert entry.provider_id == "1"
    assert kind == "exact"


def test_match_candidates_prefers_exact_match_regardless_of_order():
    match = match_candidates("Bronny James", _entries("Bronny", "LeBron James", "Bronny James"))
    assert match is not None
    entry, kind = match
    assert entry.title == "Bronny James"
    assert kind == "exact"


def test_match_candidates_fuzzy_returns_first_in_provider_order():
    match = match_candidates("Anthony", _entries("Carmelo Anthony", "Anthony Davis"))
    assert match is not None
    entry, kind = match
    assert entry.title == "Carmelo Anthony"
    assert kind == "fuzzy"


def test_match_candidates_no_match():
    assert match_candidates("Kevin Durant", _entries("Kevin Love", "Durant Kevin")) is None
    assert match_candidates("", _entries("Kevin Love")) is None


class _FakeLookup:
    def __init__(self, source: str, lookup: str, entries: List[IndexEntry], fail: bool = False):
        self.source = source
        self.lookup = lookup
        self.entries = entries
        self.fail = fail
        self.index_calls = 0
        self.search_calls: List[str] = []

    async def load_index(self) -> List[IndexEntry]:
        self.index_calls += 1
        if self.fail:
            raise UpstreamError(self.source, "boom")
        return self.entries

    async def search(self, name: str) -> List[IndexEntry]:
        self.search_calls.append(name)
        if self.fail:
            raise UpstreamError(self.source, "boom")
        return self.entries


@pytest.mark.anyio
async def test_resolver_loads_index_once_per_run():
    lookup = _FakeLookup("nba_stats", "index", _entries("LeBron James", "Stephen Curry"))
    resolver = IdentityResolver({"nba_stats": lookup})

    lebron = await resolver.resolve("LeBron James", "nba_stats")
    steph = await resolver.resolve("Stephen Curry", "nba_stats")

    assert lebron is not None and lebron.value == "1"
    assert steph is not None and steph.value == "2"
    assert lebron.source == "nba_stats"
    assert lookup.index_calls == 1


@pytest.mark.anyio
async def test_resolver_caches_unresolved_names_within_run():
    lookup = _FakeLookup("espn", "search", _entries("Somebody Else"))
    resolver = IdentityResolver({"espn": lookup})

    assert await resolver.resolve("Nobody Known", "espn") is None
    assert await resolver.resolve("nobody known", "espn") is None
    assert lookup.search_calls == ["Nobody Known"]
    assert resolver.uses_live_search("espn")

    fresh = IdentityResolver({"espn": lookup})
    assert await fresh.resolve("Nobody Known", "espn") is None
    assert len(lookup.search_calls) == 2


@pytest.mark.anyio
async def test_resolver_treats_upstream_failure_as_unresolved():
    lookup = _FakeLookup("nba_stats", "index", [], fail=True)
    resolver = IdentityResolver({"nba_stats": lookup})
    assert await resolver.resolve("LeBron James", "nba_stats") is None
    assert await resolver.resolve("Stephen Curry", "nba_stats") is None
    assert lookup.index_calls == 1


@pytest.mark.anyio
async def test_resolver_unknown_source_returns_none():
    resolver = IdentityResolver({})
    assert await resolver.resolve("LeBron James", "espn") is None
