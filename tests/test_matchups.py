from datetime import datetime

import pytest

from leaderboards.performance.matchups import (
    MATCHUP_SCHEMA,
    TREND_SCHEMA,
    best_matchups,
    matchup_breakdown,
    usage_trend,
    worst_matchups,
)


def _match(winner_side, entity_a, entity_b, points=1, played_at=None):
    return {
        "participant_a": "A",
        "participant_b": "B",
        "winner": "A" if winner_side == "a" else "B",
        "entity_a": entity_a,
        "entity_b": entity_b,
        "points_awarded": points,
        "played_at": played_at,
    }


@pytest.fixture
def matches():
    return [
        _match("a", "X", "Y"),
        _match("a", "X", "Y"),
        _match("b", "X", "Y"),
        _match("b", "Z", "X"),
        _match("a", "X", "Z"),
        _match("b", "X", "Z"),
        _match("a", "X", "W"),
    ]


def test_matchup_breakdown_respects_minimum(matches):
    table = matchup_breakdown(matches, "X")
    rows = {row["opponent_entity"]: row for row in table.iter_rows(named=True)}

    assert table.columns == list(MATCHUP_SCHEMA)
    assert set(rows) == {"Y", "Z"}
    assert rows["Y"]["wins"] == 2
    assert rows["Y"]["losses"] == 1
    assert rows["Y"]["win_rate"] == pytest.approx(2 / 3)
    assert rows["Y"]["weighted_win_rate"] == pytest.approx(2 / 3 * 3 / 13)
    # X beat Z from side b once and side a once, then lost once
    assert rows["Z"]["wins"] == 2
    assert rows["Z"]["losses"] == 1
    assert rows["Z"]["total_matches"] == 3

    everything = matchup_breakdown(matches, "X", min_matches=1)
    assert everything.get_column("opponent_entity").to_list() == ["Y", "Z", "W"]


def test_mirror_matches_count_both_sides():
    table = matchup_breakdown([_match("a", "X", "X")], "X", min_matches=1)
    row = table.row(0, named=True)
    assert row["opponent_entity"] == "X"
    assert row["wins"] == 1
    assert row["losses"] == 1


def test_best_and_worst_matchups_order_by_win_rate(matches):
    best = best_matchups(matches, "X", min_matches=1, limit=2)
    worst = worst_matchups(matches, "X", min_matches=1, limit=1)

    assert best.get_column("opponent_entity").to_list() == ["W", "Y"]
    # Y and Z are both at 2/3; ties keep first-encounter order
    assert worst.get_column("opponent_entity").to_list() == ["Y"]
    assert worst_matchups(
        matches, "X", min_matches=1, limit=3
    ).get_column("opponent_entity").to_list() == ["Y", "Z", "W"]


def test_unknown_entity_gives_empty_table(matches):
    table = matchup_breakdown(matches, "Nobody")
    assert table.is_empty()
    assert table.columns == list(MATCHUP_SCHEMA)


def test_usage_trend_buckets_by_month():
    matches = [
        _match("a", "X", "Y", points=3, played_at=datetime(2025, 1, 5)),
        _match("b", "X", "Y", points=2, played_at=datetime(2025, 1, 20)),
        _match("a", "X", "Y", points=1, played_at=datetime(2025, 2, 3)),
        _match("a", "X", "Y", points=1),
    ]
    trend = usage_trend(matches, "X")

    assert trend.columns == list(TREND_SCHEMA)
    assert trend.get_column("period").to_list() == [
        datetime(2025, 1, 1),
        datetime(2025, 2, 1),
    ]
    january = trend.row(0, named=True)
    assert january["usage"] == 2
    assert january["wins"] == 1
    assert january["win_rate"] == 0.5
    assert january["avg_points_per_match"] == 1.5
    assert trend.row(1, named=True)["usage"] == 1


def test_usage_trend_without_dates_is_empty():
    trend = usage_trend([_match("a", "X", "Y")], "X")
    assert trend.is_empty()
