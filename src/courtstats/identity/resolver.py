"""Exact-then-fuzzy name matching against provider player catalogs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Set, Tuple

from courtstats.errors import UpstreamError
from courtstats.models import ProviderId

from .normalize import MatchKind, normalize_name


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexEntry:
    """A ``(title, id)`` pair from a provider's searchable catalog."""

    title: str
    provider_id: str
    normalized: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if not self.normalized:
            object.__setattr__(self, "normalized", normalize_name(self.title))


class IdentityLookup(Protocol):
    source: str
    lookup: str

    async def load_index(self) -> List[IndexEntry]: ...

    async def search(self, name: str) -> List[IndexEntry]: ...


def match_candidates(
    query: str,
    candidates: Sequence[IndexEntry],
) -> Optional[Tuple[IndexEntry, MatchKind]]:
    """Pick the candidate for ``query``.

    An exact normalized match always wins regardless of position. Otherwise the
    first containment match in provider order is returned; candidates are not
    ranked beyond that.
    """

    target = normalize_name(query)
    if not target:
        return None
    fuzzy: IndexEntry | None = None
    for candidate in candidates:
        name = candidate.normalized
        if not name:
            continue
        if name == target:
            return candidate, "exact"
        if fuzzy is None and (target in name or name in target):
            fuzzy = candidate
    if fuzzy is not None:
        return fuzzy, "fuzzy"
    return None


class IdentityResolver:
    """Resolve display names to provider ids for the duration of one run.

    Catalog indexes and unresolved lookups are cached on the instance only, so
    negatives are retried on the next run when upstream catalogs change.
    """

    def __init__(self, lookups: Mapping[str, IdentityLookup]):
        self._lookups = dict(lookups)
        self._indexes: Dict[str, List[IndexEntry]] = {}
        self._unresolved: Set[Tuple[str, str]] = set()
        self._resolved: Dict[Tuple[str, str], ProviderId] = {}

    @property
    def sources(self) -> List[str]:
        return list(self._lookups)

    def uses_live_search(self, source: str) -> bool:
        lookup = self._lookups.get(source)
        return lookup is not None and lookup.lookup == "search"

    async def _candidates(self, lookup: IdentityLookup, name: str) -> List[IndexEntry]:
        if lookup.lookup == "index":
            cached = self._indexes.get(lookup.source)
            if cached is None:
                try:
                    cached = await lookup.load_index()
                except UpstreamError as exc:
                    logger.warning("Index for %s unavailable: %s", lookup.source, exc)
                    cached = []
                self._indexes[lookup.source] = cached
                logger.info("Loaded %d index entries for %s", len(cached), lookup.source)
            return cached
        return await lookup.search(name)

    async def resolve(self, display_name: str, source: str) -> ProviderId | None:
        """Return the provider id for ``display_name`` or ``None`` when unresolved."""

        lookup = self._lookups.get(source)
        if lookup is None:
            return None
        key = (source, normalize_name(display_name))
        if not key[1] or key in self._unresolved:
            return None
        if key in self._resolved:
            return self._resolved[key]

        try:
            candidates = await self._candidates(lookup, display_name)
        except UpstreamError as exc:
            logger.warning("Identity lookup for %r on %s failed: %s", display_name, source, exc)
            candidates = []

        match = match_candidates(display_name, candidates)
        if match is None:
            logger.info("NO MATCH: %s on %s", display_name, source)
            self._unresolved.add(key)
            return None
        entry, kind = match
        logger.info("MATCH (%s): %s -> %s:%s", kind, display_name, source, entry.provider_id)
        resolved = ProviderId(source=source, value=entry.provider_id)
        self._resolved[key] = resolved
        return resolved
