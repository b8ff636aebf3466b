"""Display-name normalization used by every identity-matching step."""

from __future__ import annotations

import re
import unicodedata
from typing import Literal, Optional


_NAME_SUFFIX_TOKENS = {"jr", "sr", "ii", "iii", "iv"}
_NON_LETTERS = re.compile(r"[^a-z ]+")

MatchKind = Literal["exact", "fuzzy"]


def _strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_name(name: str | None) -> str:
    """Reduce a display name to a comparable form.

    Lower-cases, folds accents, drops everything outside ``[a-z ]`` and removes
    trailing generational suffixes (``Jr.``, ``Sr.``, ``II``, ``III``, ``IV``).
    ``normalize_name(normalize_name(n)) == normalize_name(n)`` for every input.
    """

    if not name:
        return ""
    lowered = _strip_accents(str(name)).lower()
    cleaned = _NON_LETTERS.sub("", lowered)
    tokens = cleaned.split()
    while tokens and tokens[-1] in _NAME_SUFFIX_TOKENS:
        tokens.pop()
    return " ".join(tokens)


def names_match(left: str, right: str) -> Optional[MatchKind]:
    """Compare two display names: ``"exact"``, ``"fuzzy"`` (containment) or ``None``."""

    a = normalize_name(left)
    b = normalize_name(right)
    if not a or not b:
        return None
    if a == b:
        return "exact"
    if a in b or b in a:
        return "fuzzy"
    return None
