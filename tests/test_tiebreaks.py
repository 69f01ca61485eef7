import polars as pl

from leaderboards.standings.tiebreaks import (
    WINS_AGAINST,
    OpponentStrengthCalculator,
    head_to_head_tiebreak,
    median_buchholz,
)


def test_median_buchholz_trims_only_above_two_opponents():
    assert median_buchholz([1, 5, 9]) == 5
    assert median_buchholz([1, 9]) == 10
    assert median_buchholz([9, 1, 5, 3]) == 8
    assert median_buchholz([]) == 0


def test_calculator_matches_the_sequence_helper():
    scores = pl.DataFrame(
        {"participant": ["P", "A", "B", "C", "Q"], "score": [2, 1, 5, 9, 0]}
    )
    opponents = pl.DataFrame(
        {
            "participant": ["P", "P", "P", "P", "Q"],
            # A appears twice; only distinct opponents count
            "opponent": ["A", "B", "C", "A", "A"],
        }
    )

    result = OpponentStrengthCalculator().compute(scores, opponents)
    buchholz = dict(zip(result["participant"], result["buchholz"]))

    assert buchholz["P"] == median_buchholz([1, 5, 9])
    assert buchholz["Q"] == 1
    # No recorded opponents
    assert buchholz["A"] == 0


def test_head_to_head_only_counts_opponents_on_the_same_score():
    scores = pl.DataFrame(
        {"participant": ["A", "B", "C"], "score": [2, 2, 1]}
    )
    wins_against = pl.DataFrame(
        {
            "participant": ["A", "A", "B"],
            "opponent": ["B", "C", "C"],
            WINS_AGAINST: [1, 1, 1],
        }
    )

    result = head_to_head_tiebreak(scores, wins_against)
    tb = dict(zip(result["participant"], result["tb"]))

    assert tb == {"A": 1, "B": 0, "C": 0}
