import math

import pytest

from courtstats.ingest import (
    build_line,
    coerce_stat,
    extract_embedded_json,
    extract_html_table,
    extract_typed_fields,
    parse_number,
    rows_from_result_set,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (20.1, 20.1),
        (7, 7.0),
        ("5.2", 5.2),
        ("1,234", 1234.0),
        ("45.1%", 45.1),
        (".512", 0.512),
        ("", None),
        ("-", None),
        ("—", None),
        ("N/A", None),
        ("abc", None),
        (None, None),
        (True, None),
        (math.nan, None),
        (math.inf, None),
    ],
)
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


def test_coerce_stat_scales_percent_notation():
    assert coerce_stat("fg_pct", "55.1") == pytest.approx(0.551)
    assert coerce_stat("fg_pct", 0.48) == 0.48
    assert coerce_stat("ppg", 55.1) == 55.1


def test_extract_typed_fields_uses_fallback_keys_and_skips_unknowns():
    record = {"avgPoints": "25.4", "rpg": "", "fieldGoalPct": 49.8}
    values = extract_typed_fields(
        record,
        {"ppg": ("ppg", "avgPoints"), "rpg": "rpg", "fg_pct": ("fgPct", "fieldGoalPct")},
    )
    assert values == {"ppg": 25.4, "fg_pct": pytest.approx(0.498)}


def test_extract_typed_fields_rejects_unknown_stat_field():
    with pytest.raises(KeyError):
        extract_typed_fields({"x": 1}, {"dunks": "x"})


def test_build_line_missing_values_are_unknown_not_zero():
    line = build_line("nba_stats", "2023-24", {"PTS": 10.0, "REB": None}, {"ppg": "PTS", "rpg": "REB"})
    assert line is not None
    assert line.season == "2023-24"
    assert line.ppg == 10.0
    assert line.rpg is None


def test_build_line_skips_unrecognized_season():
    assert build_line("bbref", "Career", {"pts": "1"}, {"ppg": "pts"}) is None


def test_rows_from_result_set_handles_bad_shapes():
    payload = {"resultSets": [{"name": "A", "headers": ["X", "Y"], "rowSet": [[1, 2], "junk"]}]}
    assert rows_from_result_set(payload) == [{"X": 1, "Y": 2}]
    assert rows_from_result_set(payload, "B") == []
    assert rows_from_result_set({"resultSets": "nope"}) == []
    assert rows_from_result_set(["not", "a", "mapping"]) == []


def test_extract_embedded_json_reads_fragment_after_label():
    text = 'var data = {"meta": 1, "seasonAverages": [{"season": 2024, "ppg": 20.5}], "tail": true};'
    assert extract_embedded_json(text, "seasonAverages") == [{"season": 2024, "ppg": 20.5}]


def test_extract_embedded_json_missing_or_malformed_is_none():
    assert extract_embedded_json("<html>nothing here</html>", "seasonAverages") is None
    assert extract_embedded_json('{"seasonAverages": [{"ppg": 20.5,,]}', "seasonAverages") is None
    assert extract_embedded_json("", "seasonAverages") is None


_TABLE = """
<table id="per_game_stats">
  <thead><tr><th data-stat="year_id">Season</th><th data-stat="pts_per_g">PTS</th></tr></thead>
  <tbody>
    <tr><th data-stat="year_id">2022-23</th><td data-stat="pts_per_g">28.9</td><td data-stat="fg_pct">.500</td></tr>
    <tr class="thead"><th data-stat="year_id">Season</th><td data-stat="pts_per_g">PTS</td></tr>
    <tr><th data-stat="year_id">2023-24</th><td data-stat="pts_per_g">25.7</td><td data-stat="fg_pct"></td></tr>
    <tr><th data-stat="year_id">Career</th><td data-stat="pts_per_g">27.1</td></tr>
  </tbody>
</table>
"""


def test_extract_html_table_rows():
    rows = extract_html_table(_TABLE, "per_game_stats")
    assert rows == [
        {"year_id": "2022-23", "pts_per_g": "28.9", "fg_pct": ".500"},
        {"year_id": "2023-24", "pts_per_g": "25.7", "fg_pct": ""},
    ]


def test_extract_html_table_inside_comment():
    html = "<div id='all_per_game'><!--%s--></div>" % _TABLE
    rows = extract_html_table(html, "per_game_stats")
    assert [row["year_id"] for row in rows] == ["2022-23", "2023-24"]


def test_extract_html_table_missing_table_is_empty():
    assert extract_html_table("<html><body></body></html>", "per_game_stats") == []
