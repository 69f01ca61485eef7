"""Head-to-head matchups and usage over time for a single combo."""

from __future__ import annotations

from typing import TYPE_CHECKING

import polars as pl

from leaderboards.core.config import PerformanceConfig, SelectionConfig
from leaderboards.core.constants import (
    AVG_POINTS_PER_MATCH,
    DEFAULT_MATCHUP_LIMIT,
    ENTITY,
    LOSSES,
    OPPONENT_ENTITY,
    PERIOD,
    PLAYED_AT,
    TOTAL_MATCHES,
    TOTAL_POINTS,
    USAGE,
    WEIGHTED_WIN_RATE,
    WIN_RATE,
    WINS,
    WON,
)
from leaderboards.core.convert import resolved_matches
from leaderboards.core.logging import get_logger
from leaderboards.performance.aggregator import (
    POINTS_EARNED,
    EntityPerformanceAggregator,
    performance_metric_expressions,
)

if TYPE_CHECKING:
    from leaderboards.core.convert import MatchInput

logger = get_logger(__name__)

MATCHUP_SCHEMA: dict[str, pl.DataType] = {
    OPPONENT_ENTITY: pl.Utf8,
    WINS: pl.Int64,
    LOSSES: pl.Int64,
    TOTAL_MATCHES: pl.Int64,
    WIN_RATE: pl.Float64,
    WEIGHTED_WIN_RATE: pl.Float64,
}

TREND_SCHEMA: dict[str, pl.DataType] = {
    PERIOD: pl.Datetime("us"),
    USAGE: pl.Int64,
    WINS: pl.Int64,
    WIN_RATE: pl.Float64,
    AVG_POINTS_PER_MATCH: pl.Float64,
}


def _entity_trials(
    matches: MatchInput,
    entity: str,
    config: PerformanceConfig | None,
    selection: SelectionConfig | None,
) -> tuple[EntityPerformanceAggregator, pl.DataFrame]:
    aggregator = EntityPerformanceAggregator(config, selection=selection)
    frame, _ = aggregator.prepare(matches)
    trials, _ = aggregator.trials(resolved_matches(frame))
    return aggregator, trials.filter(pl.col(ENTITY) == entity)


def matchup_breakdown(
    matches: MatchInput,
    entity: str,
    *,
    min_matches: int | None = None,
    config: PerformanceConfig | None = None,
    selection: SelectionConfig | None = None,
) -> pl.DataFrame:
    """Record of ``entity`` against every opposing combo it has faced.

    Mirror matches count for both sides, so a combo facing itself shows one
    win and one loss per match against itself.

    Args:
        matches: Match records.
        entity: Combo to analyse.
        min_matches: Opposing combos with fewer trials are left out.
            Defaults to ``config.matchup_min_matches`` (3).
        config: Performance configuration. Defaults to None.
        selection: Optional selection policy. Defaults to None.

    Returns:
        DataFrame with columns: opponent_entity, wins, losses, total_matches,
        win_rate, weighted_win_rate, in first-encounter order.
    """
    aggregator, trials = _entity_trials(matches, entity, config, selection)
    if min_matches is None:
        min_matches = aggregator.config.matchup_min_matches

    trials = trials.filter(pl.col(OPPONENT_ENTITY).is_not_null())
    if trials.is_empty():
        return pl.DataFrame(schema=MATCHUP_SCHEMA)

    metrics = {
        expression.meta.output_name(): expression
        for expression in performance_metric_expressions(
            aggregator.config, aggregator.shrinkage
        )
    }
    matchups = (
        trials.group_by(OPPONENT_ENTITY, maintain_order=True)
        .agg(
            [
                pl.col(WON).sum().cast(pl.Int64).alias(WINS),
                (~pl.col(WON)).sum().cast(pl.Int64).alias(LOSSES),
                pl.len().cast(pl.Int64).alias(TOTAL_MATCHES),
            ]
        )
        .filter(pl.col(TOTAL_MATCHES) >= min_matches)
        .with_columns([metrics[WIN_RATE], metrics[WEIGHTED_WIN_RATE]])
    )
    logger.debug(
        f"{entity}: {matchups.height} matchups with at least {min_matches} matches"
    )
    return matchups.select(
        [pl.col(name).cast(dtype) for name, dtype in MATCHUP_SCHEMA.items()]
    )


def best_matchups(
    matches: MatchInput,
    entity: str,
    *,
    limit: int = DEFAULT_MATCHUP_LIMIT,
    min_matches: int | None = None,
    config: PerformanceConfig | None = None,
    selection: SelectionConfig | None = None,
) -> pl.DataFrame:
    """Opposing combos ``entity`` beats most often, highest win rate first."""
    return (
        matchup_breakdown(
            matches,
            entity,
            min_matches=min_matches,
            config=config,
            selection=selection,
        )
        .sort(WIN_RATE, descending=True, maintain_order=True)
        .head(limit)
    )


def worst_matchups(
    matches: MatchInput,
    entity: str,
    *,
    limit: int = DEFAULT_MATCHUP_LIMIT,
    min_matches: int | None = None,
    config: PerformanceConfig | None = None,
    selection: SelectionConfig | None = None,
) -> pl.DataFrame:
    """Opposing combos ``entity`` struggles against, lowest win rate first."""
    return (
        matchup_breakdown(
            matches,
            entity,
            min_matches=min_matches,
            config=config,
            selection=selection,
        )
        .sort(WIN_RATE, descending=False, maintain_order=True)
        .head(limit)
    )


def usage_trend(
    matches: MatchInput,
    entity: str,
    every: str = "1mo",
    *,
    config: PerformanceConfig | None = None,
    selection: SelectionConfig | None = None,
) -> pl.DataFrame:
    """Usage, win rate and average points of ``entity`` per time bucket.

    Trials without ``played_at`` cannot be placed in a bucket and are left
    out. Buckets follow polars duration strings (``"1w"``, ``"1mo"``, ...).

    Returns:
        DataFrame with columns: period, usage, wins, win_rate,
        avg_points_per_match, oldest period first.
    """
    _, trials = _entity_trials(matches, entity, config, selection)
    trials = trials.filter(pl.col(PLAYED_AT).is_not_null())
    if trials.is_empty():
        return pl.DataFrame(schema=TREND_SCHEMA)

    trend = (
        trials.with_columns(pl.col(PLAYED_AT).dt.truncate(every).alias(PERIOD))
        .group_by(PERIOD)
        .agg(
            [
                pl.len().cast(pl.Int64).alias(USAGE),
                pl.col(WON).sum().cast(pl.Int64).alias(WINS),
                pl.col(POINTS_EARNED).sum().cast(pl.Int64).alias(TOTAL_POINTS),
            ]
        )
        .sort(PERIOD)
        .with_columns(
            [
                (pl.col(WINS).cast(pl.Float64) / pl.col(USAGE)).alias(WIN_RATE),
                (pl.col(TOTAL_POINTS).cast(pl.Float64) / pl.col(USAGE)).alias(
                    AVG_POINTS_PER_MATCH
                ),
            ]
        )
    )
    return trend.select(
        [pl.col(name).cast(dtype) for name, dtype in TREND_SCHEMA.items()]
    )
