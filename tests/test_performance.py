import polars as pl
import pytest

from leaderboards.core.config import PerformanceConfig
from leaderboards.core.records import IssueKind
from leaderboards.core.smoothing import wilson_lower_bound
from leaderboards.performance.aggregator import (
    PERFORMANCE_SCHEMA,
    EntityPerformanceAggregator,
    add_performance_metrics,
    aggregate_performance,
)


def _combo_match(a, b, winner, entity_a, entity_b, points=3, **extra):
    return {
        "participant_a": a,
        "participant_b": b,
        "winner": winner,
        "entity_a": entity_a,
        "entity_b": entity_b,
        "points_awarded": points,
        **extra,
    }


def _rows(result):
    return {row["entity"]: row for row in result.entities.iter_rows(named=True)}


def test_shrinkage_rewards_larger_samples():
    matches = [
        _combo_match("P", "Q", "P", "Alpha", "Fodder") for _ in range(100)
    ] + [_combo_match("R", "S", "R", "Beta", "Fodder") for _ in range(10)]

    result = aggregate_performance(matches)
    rows = _rows(result)

    assert rows["Alpha"]["win_rate"] == 1.0
    assert rows["Beta"]["win_rate"] == 1.0
    assert rows["Alpha"]["weighted_win_rate"] == pytest.approx(100 / 110)
    assert rows["Beta"]["weighted_win_rate"] == pytest.approx(0.5)
    # 3 points per win on a 3 point scale leaves the weighted rate x 100
    assert rows["Alpha"]["composite_score"] == pytest.approx(100 * 100 / 110)
    assert result.leaderboard.get_column("entity").to_list()[:2] == [
        "Alpha",
        "Beta",
    ]


def test_points_are_only_credited_on_wins():
    matches = [_combo_match("A", "B", "A", "X", "Y", points=3, score_a=3, score_b=2)]

    awarded = _rows(aggregate_performance(matches))
    assert awarded["X"]["total_points"] == 3
    assert awarded["Y"]["total_points"] == 0
    assert awarded["Y"]["losses"] == 1

    by_score = _rows(
        aggregate_performance(
            matches, config=PerformanceConfig(points_source="score")
        )
    )
    assert by_score["X"]["total_points"] == 3
    assert by_score["Y"]["total_points"] == 0


def test_zero_matches_give_zero_rates_not_nan():
    totals = pl.DataFrame(
        {"wins": [0, 2], "total_matches": [0, 4], "total_points": [0, 6]}
    )
    frame = add_performance_metrics(totals)
    empty = frame.row(0, named=True)

    for column in (
        "win_rate",
        "weighted_win_rate",
        "avg_points_per_match",
        "composite_score",
        "wilson_lower_bound",
    ):
        assert empty[column] == 0.0
    assert frame.row(1, named=True)["avg_points_per_match"] == 1.5


def test_wilson_lower_bound_values():
    bounds = wilson_lower_bound([10, 0, 5], [10, 0, 10])
    assert bounds[0] == pytest.approx(0.7225, abs=1e-4)
    assert bounds[1] == 0.0
    assert 0.0 < bounds[2] < 0.5


def test_group_by_merges_entity_totals():
    matches = [
        _combo_match("A", "B", "A", "Dran Sword 3-60F", "Wizard Rod 9-60B"),
        _combo_match("C", "B", "B", "Dran Sword 4-60F", "Wizard Rod 9-60B"),
        _combo_match("A", "D", "A", "Dran Sword 3-60F", "Mystery"),
    ]

    def blade(entity):
        words = entity.split()
        return " ".join(words[:2]) if len(words) == 3 else None

    result = aggregate_performance(matches, blade)
    rows = _rows(result)

    assert result.grouped
    assert set(rows) == {"Dran Sword", "Wizard Rod"}
    assert rows["Dran Sword"]["wins"] == 2
    assert rows["Dran Sword"]["losses"] == 1
    assert rows["Dran Sword"]["total_matches"] == 3
    assert rows["Dran Sword"]["entity_count"] == 2
    assert rows["Dran Sword"]["owners"] == 2
    assert rows["Wizard Rod"]["total_matches"] == 2
    assert rows["Wizard Rod"]["entity_count"] == 1


def test_per_owner_keeps_owner_key():
    matches = [
        _combo_match("A", "B", "A", "X", "X"),
        _combo_match("A", "C", "C", "X", "X"),
    ]
    result = aggregate_performance(matches, per_owner=True)
    rows = {
        (row["entity"], row["owner"]): row
        for row in result.entities.iter_rows(named=True)
    }

    assert result.per_owner
    assert rows[("X", "A")]["total_matches"] == 2
    assert rows[("X", "A")]["wins"] == 1
    assert rows[("X", "B")]["losses"] == 1
    assert rows[("X", "C")]["wins"] == 1
    assert all(row["owners"] == 1 for row in rows.values())


def test_missing_entity_skips_only_that_side():
    matches = [_combo_match("A", "B", "A", "X", None)]
    result = aggregate_performance(matches)

    assert list(_rows(result)) == ["X"]
    issues = result.issues_of(IssueKind.MISSING_ENTITY)
    assert len(issues) == 1
    assert issues[0].match_index == 0
    assert "(B)" in issues[0].reason


def test_empty_input_returns_full_schema():
    result = aggregate_performance([])
    assert result.entities.columns == list(PERFORMANCE_SCHEMA)
    assert result.leaderboard.is_empty()
    assert result.to_records() == []


def test_result_views_and_records():
    matches = [
        _combo_match("A", "B", "A", "X", "Y", points=1),
        _combo_match("A", "B", "B", "X", "Y", points=3),
    ]
    result = aggregate_performance(matches)

    by_points = result.sorted_by("total_points")
    assert by_points.get_column("entity").to_list() == ["Y", "X"]
    records = result.to_records()
    assert {record.entity for record in records} == {"X", "Y"}
    assert all(record.owner is None for record in records)
    with pytest.raises(ValueError):
        result.sorted_by("not_a_column")


def test_invalid_configuration_raises():
    with pytest.raises(ValueError):
        EntityPerformanceAggregator(PerformanceConfig(points_source="bonus"))
    with pytest.raises(ValueError):
        EntityPerformanceAggregator(PerformanceConfig(smoothing_mode="bayes"))
    with pytest.raises(ValueError):
        EntityPerformanceAggregator(PerformanceConfig(points_scale=0))
