"""Source adapters and the extraction layer that normalizes their payloads."""

from .adapters import (
    BalldontlieAdapter,
    BbrefAdapter,
    EspnAdapter,
    NbaStatsAdapter,
    PhotoCdnAdapter,
    SourceAdapter,
    SportsDbAdapter,
    build_adapters,
    build_photo_adapters,
)
from .extract import (
    build_line,
    coerce_stat,
    extract_embedded_json,
    extract_html_table,
    extract_typed_fields,
    parse_number,
    rows_from_result_set,
)

__all__ = [
    "BalldontlieAdapter",
    "BbrefAdapter",
    "EspnAdapter",
    "NbaStatsAdapter",
    "PhotoCdnAdapter",
    "SourceAdapter",
    "SportsDbAdapter",
    "build_adapters",
    "build_photo_adapters",
    "build_line",
    "coerce_stat",
    "extract_embedded_json",
    "extract_html_table",
    "extract_typed_fields",
    "parse_number",
    "rows_from_result_set",
]
