"""Player name normalization and provider identity resolution."""

from .normalize import MatchKind, names_match, normalize_name
from .resolver import IdentityLookup, IdentityResolver, IndexEntry, match_candidates
from .sync import SyncReport, sync_provider_ids

__all__ = [
    "MatchKind",
    "names_match",
    "normalize_name",
    "IdentityLookup",
    "IdentityResolver",
    "IndexEntry",
    "match_candidates",
    "SyncReport",
    "sync_provider_ids",
]
