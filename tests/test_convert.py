from datetime import datetime, timezone

import polars as pl
import pytest

from leaderboards.core.convert import (
    count_unresolved,
    expand_sides,
    normalize_matches,
    resolved_matches,
)
from leaderboards.core.records import IssueKind


def test_normalize_maps_source_row_names():
    rows = [
        {
            "player1_name": "A",
            "player2_name": "B",
            "winner_name": "B",
            "player1_final_score": "2",
            "player2_final_score": 3.0,
            "player1_beyblade": "Dran Sword 3-60F",
            "player2_beyblade": "Wizard Rod 9-60B",
            "tournament_id": 42,
            "submitted_at": "2025-03-01T10:00:00Z",
            "isPractice": "false",
        }
    ]
    frame, issues = normalize_matches(rows)
    row = frame.row(0, named=True)

    assert issues == []
    assert row["participant_a"] == "A"
    assert row["winner"] == "B"
    assert row["score_a"] == 2
    assert row["score_b"] == 3
    assert row["entity_b"] == "Wizard Rod 9-60B"
    assert row["grouping_key"] == "42"
    assert row["is_practice"] is False
    assert row["played_at"] == datetime(2025, 3, 1, 10, 0)
    assert row["is_valid"] and row["is_resolved"]


def test_blank_identifiers_and_bad_numbers():
    rows = [
        {"participant_a": "A", "participant_b": "  ", "winner": "A"},
        {"participant_a": "A", "participant_b": "B", "winner": "", "score_a": "n/a"},
    ]
    frame, issues = normalize_matches(rows)

    assert [issue.kind for issue in issues] == [IssueKind.MALFORMED_RECORD]
    assert frame.get_column("is_valid").to_list() == [False, True]
    assert frame.get_column("score_a").to_list() == [0, 0]
    assert count_unresolved(frame) == 1
    assert resolved_matches(frame).is_empty()


def test_dataframe_input_with_timezone_aware_timestamps():
    source = pl.DataFrame(
        {
            "participantA": ["A", "C"],
            "participantB": ["B", "D"],
            "winner": ["A", "D"],
            "scoreA": [3, -1],
            "playedAt": [
                datetime(2025, 1, 1, 12, tzinfo=timezone.utc),
                datetime(2025, 1, 2, 12, tzinfo=timezone.utc),
            ],
        }
    )
    frame, issues = normalize_matches(source.lazy())

    assert frame.get_column("match_index").to_list() == [0, 1]
    assert frame.get_column("score_a").to_list() == [3, 0]
    assert frame.get_column("score_b").to_list() == [0, 0]
    assert frame.get_column("played_at").to_list()[0] == datetime(2025, 1, 1, 12)
    assert [issue.kind for issue in issues] == [IssueKind.NEGATIVE_VALUE]
    assert issues[0].match_index == 1


def test_rejects_missing_collection():
    with pytest.raises(TypeError):
        normalize_matches(None)
    with pytest.raises(TypeError):
        normalize_matches(b"raw")


def test_expand_sides_orders_side_a_first():
    frame, _ = normalize_matches(
        [
            {"participant_a": "A", "participant_b": "B", "winner": "B", "score_a": 1, "score_b": 3},
            {"participant_a": "C", "participant_b": "A", "winner": "C"},
        ]
    )
    sides = expand_sides(resolved_matches(frame))

    assert sides.get_column("participant").to_list() == ["A", "B", "C", "A"]
    assert sides.get_column("won").to_list() == [False, True, True, False]
    assert sides.get_column("points_for").to_list()[:2] == [1, 3]


def test_canonical_names_take_precedence_over_aliases():
    rows = [
        {"participant_a": "A", "participantA": "Z", "player1_name": "Y",
         "participant_b": None, "player2_name": "B", "winner": "A"},
    ]
    frame, _ = normalize_matches(rows)
    row = frame.row(0, named=True)

    assert row["participant_a"] == "A"
    assert row["participant_b"] == "B"

    columns = pl.DataFrame(
        {"participantA": ["Z"], "participant_a": ["A"], "participant_b": ["B"], "winner": ["A"]}
    )
    frame, _ = normalize_matches(columns)
    assert frame.row(0, named=True)["participant_a"] == "A"
