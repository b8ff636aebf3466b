import pytest

from courtstats.models import MergedStatLine
from courtstats.projection import project


def test_project_scales_known_stats():
    current = MergedStatLine(season="2024-25", ppg=20.1, rpg=5.2, fg_pct=0.5)
    projected = project(current)
    assert projected is not None
    assert projected.season == "2025-26"
    assert projected.based_on == "2024-25"
    assert projected.ppg == 20.301
    assert projected.rpg == round(5.2 * 1.01, 3)
    assert projected.fg_pct == round(0.5 * 1.01, 3)
    assert projected.apg is None


@pytest.mark.parametrize(
    "pct, expected",
    [(0.75, 0.70), (0.10, 0.20), (0.69999, 0.70), (0.0, 0.20), (1.0, 0.70)],
)
def test_project_clamps_percentages(pct, expected):
    projected = project(MergedStatLine(season="2024-25", fg_pct=pct, fg3_pct=pct, ft_pct=pct))
    assert projected is not None
    for field in ("fg_pct", "fg3_pct", "ft_pct"):
        value = getattr(projected, field)
        assert value == expected
        assert 0.20 <= value <= 0.70


def test_project_without_current_season():
    assert project(None) is None


def test_project_respects_overrides():
    projected = project(MergedStatLine(season="2024-25", ppg=10.0, ft_pct=0.9), growth_factor=1.1, pct_ceiling=0.95)
    assert projected is not None
    assert projected.ppg == 11.0
    assert projected.ft_pct == 0.95
