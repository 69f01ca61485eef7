import logging

import polars as pl
import pytest

from leaderboards.core.config import SelectionConfig
from leaderboards.core.convert import normalize_matches
from leaderboards.core.records import IssueKind
from leaderboards.core.selection import find_inconsistent_groupings, select_matches


def _frame():
    frame, _ = normalize_matches(
        [
            {"participant_a": "A", "participant_b": "B", "winner": "A", "grouping_key": "t1", "is_practice": False},
            {"participant_a": "A", "participant_b": "C", "winner": "C", "grouping_key": "t1", "is_practice": True},
            {"participant_a": "B", "participant_b": "C", "winner": "B", "grouping_key": "t2", "is_practice": None},
            {"participant_a": "B", "participant_b": "D", "winner": "D", "grouping_key": "t2", "is_practice": True},
        ]
    )
    return frame


def test_practice_flag_is_required():
    with pytest.raises(TypeError):
        SelectionConfig()


def test_exclude_practice_treats_missing_flag_as_regular():
    selected, _ = select_matches(_frame(), SelectionConfig(exclude_practice=True))
    assert selected.get_column("match_index").to_list() == [0, 2]

    everything, _ = select_matches(_frame(), SelectionConfig(exclude_practice=False))
    assert everything.height == 4


def test_grouping_keys_filter():
    selected, _ = select_matches(
        _frame(), SelectionConfig(exclude_practice=False, grouping_keys=["t2"])
    )
    assert set(selected.get_column("grouping_key")) == {"t2"}


def test_inconsistent_grouping_is_reported(caplog):
    caplog.set_level(logging.WARNING, logger="leaderboards.core.selection")
    issues = find_inconsistent_groupings(_frame())

    # t2 only mixes a missing flag with True, which is not a conflict
    assert [issue.grouping_key for issue in issues] == ["t1"]
    assert issues[0].kind == IssueKind.INCONSISTENT_GROUPING
    assert any("mixes practice flags" in message for message in caplog.messages)


def test_no_groupings_on_empty_frame():
    frame, _ = normalize_matches(pl.DataFrame())
    assert find_inconsistent_groupings(frame) == []
