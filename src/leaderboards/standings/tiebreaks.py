"""Tie-break signals: head-to-head wins inside score groups and median Buchholz."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import polars as pl

from leaderboards.core.constants import (
    BUCHHOLZ,
    DEFAULT_BUCHHOLZ_TRIM_ABOVE,
    OPPONENT,
    PARTICIPANT,
    SCORE,
    TB,
)

WINS_AGAINST = "wins_against"
_OPPONENT_SCORE = "opponent_score"


def _opponent_scores(scores: pl.DataFrame) -> pl.DataFrame:
    return scores.select(
        [
            pl.col(PARTICIPANT).alias(OPPONENT),
            pl.col(SCORE).alias(_OPPONENT_SCORE),
        ]
    )


def median_buchholz(
    opponent_scores: Sequence[int],
    trim_above: int = DEFAULT_BUCHHOLZ_TRIM_ABOVE,
) -> int:
    """Sum opponent scores, dropping one lowest and one highest value.

    Trimming only happens with more than ``trim_above`` opponents; smaller
    sets are summed whole, since trimming two values would empty them.

    Examples:
        >>> median_buchholz([1, 5, 9])
        5
        >>> median_buchholz([1, 9])
        10
    """
    ordered = sorted(opponent_scores)
    if len(ordered) > trim_above:
        ordered = ordered[1:-1]
    return sum(ordered)


@dataclass(frozen=True)
class OpponentStrengthCalculator:
    """Median Buchholz over each participant's distinct opponents."""

    trim_above: int = DEFAULT_BUCHHOLZ_TRIM_ABOVE

    def compute(
        self, scores: pl.DataFrame, opponents: pl.DataFrame
    ) -> pl.DataFrame:
        """Compute the Buchholz tie-break for every scored participant.

        Args:
            scores: Frame with ``participant`` and ``score``.
            opponents: Frame with distinct ``participant``/``opponent`` pairs.

        Returns:
            Frame with ``participant`` and ``buchholz`` for every row of
            ``scores``; participants without opponents get 0.
        """
        faced = opponents.select([PARTICIPANT, OPPONENT]).unique(
            maintain_order=True
        )
        summary = (
            faced.join(_opponent_scores(scores), on=OPPONENT, how="inner")
            .group_by(PARTICIPANT)
            .agg(
                [
                    pl.col(_OPPONENT_SCORE).sum().alias("total"),
                    pl.col(_OPPONENT_SCORE).min().alias("lowest"),
                    pl.col(_OPPONENT_SCORE).max().alias("highest"),
                    pl.len().alias("faced"),
                ]
            )
            .select(
                [
                    PARTICIPANT,
                    pl.when(pl.col("faced") > self.trim_above)
                    .then(pl.col("total") - pl.col("lowest") - pl.col("highest"))
                    .otherwise(pl.col("total"))
                    .cast(pl.Int64)
                    .alias(BUCHHOLZ),
                ]
            )
        )

        return (
            scores.select(PARTICIPANT)
            .join(summary, on=PARTICIPANT, how="left")
            .with_columns(pl.col(BUCHHOLZ).fill_null(0))
        )


def head_to_head_tiebreak(
    scores: pl.DataFrame, wins_against: pl.DataFrame
) -> pl.DataFrame:
    """Wins each participant took from opponents sharing its score.

    A participant alone in its score group gets 0.

    Args:
        scores: Frame with ``participant`` and ``score``.
        wins_against: Frame with ``participant``, ``opponent`` and
            ``wins_against`` (wins of participant over opponent).

    Returns:
        Frame with ``participant`` and ``tb`` for every row of ``scores``.
    """
    tied_wins = (
        wins_against.join(scores, on=PARTICIPANT, how="inner")
        .join(_opponent_scores(scores), on=OPPONENT, how="inner")
        .filter(
            (pl.col(SCORE) == pl.col(_OPPONENT_SCORE))
            & (pl.col(PARTICIPANT) != pl.col(OPPONENT))
        )
        .group_by(PARTICIPANT)
        .agg(pl.col(WINS_AGAINST).sum().cast(pl.Int64).alias(TB))
    )

    return (
        scores.select(PARTICIPANT)
        .join(tied_wins, on=PARTICIPANT, how="left")
        .with_columns(pl.col(TB).fill_null(0))
    )
