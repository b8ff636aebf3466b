"""Translate heterogeneous provider payloads into ``SeasonStatLine`` records.

Three strategies cover the provider shapes we see:

* typed JSON records, read field by field with float coercion;
* JSON fragments embedded in HTML/text, located by a label anchor;
* HTML statistics tables whose cells carry ``data-stat`` attributes.

Parsing never raises on bad upstream content. Missing or unparseable values
become ``None`` ("unknown") and never zero.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from bs4 import BeautifulSoup, Comment

from courtstats.merge.seasons import normalize_season_label
from courtstats.models import PERCENT_FIELDS, STAT_FIELDS, SeasonStatLine


logger = logging.getLogger(__name__)

FieldSpec = Union[str, Sequence[str]]

_NUMERIC_NOISE = re.compile(r"[,%\s]")
_CAREER_LABELS = {"career", "career avg", "career totals"}


def parse_number(value: Any) -> Optional[float]:
    """Coerce a raw cell or JSON value to float; ``None`` when not numeric."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = _NUMERIC_NOISE.sub("", str(value))
        if not text or text in {"-", "--", "—", "–", "N/A", "n/a"}:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def coerce_stat(field: str, value: Any) -> Optional[float]:
    number = parse_number(value)
    if number is None:
        return None
    # Some providers report shooting in percent (55.1) rather than as a fraction.
    if field in PERCENT_FIELDS and number > 1.0:
        number = number / 100.0
    return number


def _lookup(record: Mapping[str, Any], spec: FieldSpec) -> Any:
    if isinstance(spec, str):
        return record.get(spec)
    for key in spec:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def extract_typed_fields(record: Mapping[str, Any], field_map: Mapping[str, FieldSpec]) -> Dict[str, float]:
    """Read ``field_map`` (stat field -> record key(s)) from a typed record."""

    values: Dict[str, float] = {}
    for field, spec in field_map.items():
        if field not in STAT_FIELDS:
            raise KeyError(f"Unknown stat field {field!r}")
        number = coerce_stat(field, _lookup(record, spec))
        if number is not None:
            values[field] = number
    return values


def build_line(
    source: str,
    season: Any,
    record: Mapping[str, Any],
    field_map: Mapping[str, FieldSpec],
    *,
    year_is_end: bool = False,
) -> Optional[SeasonStatLine]:
    label = normalize_season_label(season, year_is_end=year_is_end)
    if label is None:
        logger.debug("Skipping %s record with unrecognized season %r", source, season)
        return None
    return SeasonStatLine(season=label, source=source, **extract_typed_fields(record, field_map))


def rows_from_result_set(payload: Any, name: str | None = None) -> List[Dict[str, Any]]:
    """Zip an NBA stats ``resultSets`` entry's headers with each row.

    Returns an empty list if the payload does not have the expected shape.
    """

    if not isinstance(payload, Mapping):
        return []
    result_sets = payload.get("resultSets")
    if isinstance(result_sets, Mapping):
        result_sets = [result_sets]
    if not isinstance(result_sets, list):
        return []
    for result_set in result_sets:
        if not isinstance(result_set, Mapping):
            continue
        if name is not None and result_set.get("name") != name:
            continue
        headers = result_set.get("headers") or []
        rows = result_set.get("rowSet") or []
        return [dict(zip(headers, row)) for row in rows if isinstance(row, list)]
    return []


def extract_embedded_json(text: str, label: str) -> Any:
    """Decode the JSON value that follows ``"label":`` inside ``text``.

    Returns ``None`` when the anchor is missing or the fragment is not valid
    JSON; callers treat that as "no data".
    """

    if not text:
        return None
    anchor = re.search(r'["\']%s["\']\s*:\s*' % re.escape(label), text)
    if anchor is None:
        logger.warning("Embedded JSON anchor %r not found", label)
        return None
    try:
        value, _ = json.JSONDecoder().raw_decode(text, anchor.end())
    except json.JSONDecodeError as exc:
        logger.warning("Embedded JSON after %r is malformed: %s", label, exc)
        return None
    return value


def _find_table(soup: BeautifulSoup, table_id: str):
    table = soup.find("table", id=table_id)
    if table is not None:
        return table
    # Secondary tables are often shipped commented out and revealed client side.
    for comment in soup.find_all(string=lambda node: isinstance(node, Comment)):
        if table_id not in comment:
            continue
        table = BeautifulSoup(str(comment), "html.parser").find("table", id=table_id)
        if table is not None:
            return table
    return None


def _is_career_row(cells: Mapping[str, str]) -> bool:
    for value in cells.values():
        if value.strip().lower() in _CAREER_LABELS:
            return True
    return False


def extract_html_table(html: str, table_id: str) -> List[Dict[str, str]]:
    """Return one ``{data-stat: cell text}`` dict per season row of a table.

    Header repeats and the aggregate career row are dropped. Cell text is kept
    as-is; numeric parsing happens in :func:`build_line`.
    """

    if not html:
        return []
    soup = BeautifulSoup(html, "html.parser")
    table = _find_table(soup, table_id)
    if table is None:
        logger.warning("Stats table %r not found", table_id)
        return []
    body = table.find("tbody") or table
    rows: List[Dict[str, str]] = []
    for tr in body.find_all("tr"):
        classes = tr.get("class") or []
        if "thead" in classes or "spacer" in classes:
            continue
        cells: Dict[str, str] = {}
        for cell in tr.find_all(["th", "td"]):
            stat = cell.get("data-stat")
            if stat:
                cells[stat] = cell.get_text(strip=True)
        if not cells or _is_career_row(cells):
            continue
        rows.append(cells)
    return rows
