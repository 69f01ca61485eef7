"""
Combo performance: weighted win rates and composite scores per entity.

Every side of a resolved match that names an entity (a combo/loadout) is
one trial for that entity. Trials are summed per entity (optionally per
owner), then optionally merged by a sub-attribute such as a single part of
the combo, and finally turned into rates.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Mapping, Optional

import polars as pl

from leaderboards.core.config import PerformanceConfig, SelectionConfig
from leaderboards.core.constants import (
    AVG_POINTS_PER_MATCH,
    COMPOSITE_SCORE,
    ENTITY,
    ENTITY_COUNT,
    GROUPING_KEY,
    LOSSES,
    MATCH_INDEX,
    OWNER,
    OWNERS,
    PARTICIPANT,
    POINTS_AWARDED,
    POINTS_FOR,
    POINTS_SOURCES,
    SIDE,
    TOTAL_MATCHES,
    TOTAL_POINTS,
    WEIGHTED_WIN_RATE,
    WILSON_LOWER_BOUND,
    WIN_RATE,
    WINS,
    WON,
)
from leaderboards.core.convert import (
    count_unresolved,
    expand_sides,
    normalize_matches,
    resolved_matches,
)
from leaderboards.core.logging import get_logger, log_issue_summary, log_timing
from leaderboards.core.records import IssueKind, RecordIssue
from leaderboards.core.results import PerformanceResult
from leaderboards.core.selection import select_matches
from leaderboards.core.smoothing import (
    ShrinkageStrategy,
    get_shrinkage_strategy,
    wilson_lower_bound,
)

if TYPE_CHECKING:
    from leaderboards.core.convert import MatchInput

logger = get_logger(__name__)

AttributeExtractor = Callable[[str], Optional[str]]

POINTS_EARNED = "points_earned"

PERFORMANCE_SCHEMA: dict[str, pl.DataType] = {
    ENTITY: pl.Utf8,
    OWNER: pl.Utf8,
    WINS: pl.Int64,
    LOSSES: pl.Int64,
    TOTAL_MATCHES: pl.Int64,
    TOTAL_POINTS: pl.Int64,
    WIN_RATE: pl.Float64,
    WEIGHTED_WIN_RATE: pl.Float64,
    AVG_POINTS_PER_MATCH: pl.Float64,
    COMPOSITE_SCORE: pl.Float64,
    WILSON_LOWER_BOUND: pl.Float64,
    OWNERS: pl.Int64,
    ENTITY_COUNT: pl.Int64,
}

_OWNER_LIST = "_owner_list"
_GROUP = "_group"
_POSITION = "_position"


def performance_metric_expressions(
    config: PerformanceConfig,
    shrinkage: ShrinkageStrategy | None = None,
) -> list[pl.Expr]:
    """Rate expressions over ``wins``, ``total_matches`` and ``total_points``.

    Rows with no matches get 0 for every rate, never NaN.
    """
    if shrinkage is None:
        shrinkage = get_shrinkage_strategy(
            config.smoothing_mode, k=config.smoothing_k
        )

    total = pl.col(TOTAL_MATCHES).cast(pl.Float64)
    has_matches = pl.col(TOTAL_MATCHES) > 0

    win_rate = (
        pl.when(has_matches)
        .then(pl.col(WINS).cast(pl.Float64) / total)
        .otherwise(pl.lit(0.0))
    )
    avg_points = (
        pl.when(has_matches)
        .then(pl.col(TOTAL_POINTS).cast(pl.Float64) / total)
        .otherwise(pl.lit(0.0))
    )
    weighted = (
        pl.when(has_matches)
        .then(win_rate * shrinkage.weight(pl.col(TOTAL_MATCHES)))
        .otherwise(pl.lit(0.0))
    )
    composite = (
        weighted * (avg_points / config.points_scale) * config.composite_multiplier
    )

    return [
        win_rate.alias(WIN_RATE),
        weighted.alias(WEIGHTED_WIN_RATE),
        avg_points.alias(AVG_POINTS_PER_MATCH),
        composite.alias(COMPOSITE_SCORE),
    ]


def add_performance_metrics(
    totals: pl.DataFrame, config: PerformanceConfig | None = None
) -> pl.DataFrame:
    """Attach win rate, weighted win rate, points average, composite score
    and Wilson lower bound to a frame of summed totals."""
    config = config or PerformanceConfig()
    frame = totals.with_columns(performance_metric_expressions(config))
    return frame.with_columns(
        pl.Series(
            WILSON_LOWER_BOUND,
            wilson_lower_bound(
                frame.get_column(WINS).to_numpy(),
                frame.get_column(TOTAL_MATCHES).to_numpy(),
                config.wilson_z,
            ),
            dtype=pl.Float64,
        )
    )


class EntityPerformanceAggregator:
    """Aggregate combo usage into leaderboard-ready performance rows.

    Examples:
        >>> aggregator = EntityPerformanceAggregator()
        >>> result = aggregator.aggregate(matches)
        >>> result.leaderboard.head(10)
        >>> result.sorted_by("weighted_win_rate")
    """

    def __init__(
        self,
        config: PerformanceConfig | None = None,
        *,
        selection: SelectionConfig | None = None,
    ) -> None:
        self.config = config or PerformanceConfig()
        self.selection = selection

        if self.config.points_source not in POINTS_SOURCES:
            raise ValueError(
                f"Unknown points source: {self.config.points_source!r}; "
                f"expected one of {POINTS_SOURCES}"
            )
        if self.config.points_scale <= 0:
            raise ValueError("points_scale must be positive")

        self.shrinkage = get_shrinkage_strategy(
            self.config.smoothing_mode, k=self.config.smoothing_k
        )

    def prepare(
        self, matches: MatchInput
    ) -> tuple[pl.DataFrame, list[RecordIssue]]:
        """Normalize ``matches`` and apply the caller's selection policy."""
        frame, issues = normalize_matches(matches)
        if self.selection is not None:
            frame, grouping_issues = select_matches(frame, self.selection)
            issues.extend(grouping_issues)
        return frame, issues

    def _points_expression(self) -> pl.Expr:
        source = (
            pl.col(POINTS_AWARDED)
            if self.config.points_source == "awarded"
            else pl.col(POINTS_FOR)
        )
        return pl.when(pl.col(WON)).then(source).otherwise(pl.lit(0))

    def trials(
        self, resolved: pl.DataFrame
    ) -> tuple[pl.DataFrame, list[RecordIssue]]:
        """One row per match side that names an entity.

        Sides without an entity are skipped individually; the other side of
        the same match still counts.

        Returns:
            Tuple of (trial rows with ``points_earned``, missing entity issues).
        """
        sides = expand_sides(resolved)

        issues = [
            RecordIssue(
                kind=IssueKind.MISSING_ENTITY,
                reason=(
                    f"side {'A' if row[SIDE] == 0 else 'B'} "
                    f"({row[PARTICIPANT]}) has no entity"
                ),
                match_index=row[MATCH_INDEX],
                grouping_key=row[GROUPING_KEY],
            )
            for row in sides.filter(pl.col(ENTITY).is_null())
            .select([MATCH_INDEX, SIDE, PARTICIPANT, GROUPING_KEY])
            .iter_rows(named=True)
        ]

        trials = sides.filter(pl.col(ENTITY).is_not_null()).with_columns(
            self._points_expression().cast(pl.Int64).alias(POINTS_EARNED)
        )
        return trials, issues

    def entity_totals(
        self, trials: pl.DataFrame, per_owner: bool = False
    ) -> pl.DataFrame:
        """Sum trials per entity (and per owner when requested)."""
        if per_owner:
            trials = trials.with_columns(pl.col(PARTICIPANT).alias(OWNER))
            keys = [ENTITY, OWNER]
        else:
            keys = [ENTITY]

        totals = trials.group_by(keys, maintain_order=True).agg(
            [
                pl.col(WON).sum().cast(pl.Int64).alias(WINS),
                (~pl.col(WON)).sum().cast(pl.Int64).alias(LOSSES),
                pl.len().cast(pl.Int64).alias(TOTAL_MATCHES),
                pl.col(POINTS_EARNED).sum().cast(pl.Int64).alias(TOTAL_POINTS),
                pl.col(PARTICIPANT).unique(maintain_order=True).alias(_OWNER_LIST),
            ]
        )
        if not per_owner:
            totals = totals.with_columns(pl.lit(None, dtype=pl.Utf8).alias(OWNER))
        return totals.with_columns(pl.lit(1, dtype=pl.Int64).alias(ENTITY_COUNT))

    def merge_by_attribute(
        self,
        totals: pl.DataFrame,
        group_by: AttributeExtractor,
        per_owner: bool = False,
    ) -> pl.DataFrame:
        """Merge per-entity totals that share an attribute value.

        Works on totals, never raw trials, so each trial is counted once.
        Entities whose attribute is None are dropped.
        """
        entities = totals.get_column(ENTITY).unique(maintain_order=True).to_list()
        attributes = []
        for entity in entities:
            value = group_by(entity)
            attributes.append(None if value is None else str(value))

        mapping = pl.DataFrame(
            {ENTITY: entities, _GROUP: attributes},
            schema={ENTITY: pl.Utf8, _GROUP: pl.Utf8},
        )

        keys = [_GROUP, OWNER] if per_owner else [_GROUP]
        merged = (
            totals.with_columns(pl.int_range(0, pl.len()).alias(_POSITION))
            .join(mapping, on=ENTITY, how="inner")
            .filter(pl.col(_GROUP).is_not_null())
            .sort(_POSITION)
            .group_by(keys, maintain_order=True)
            .agg(
                [
                    pl.col(WINS).sum(),
                    pl.col(LOSSES).sum(),
                    pl.col(TOTAL_MATCHES).sum(),
                    pl.col(TOTAL_POINTS).sum(),
                    pl.col(_OWNER_LIST).explode().unique(maintain_order=True),
                    pl.col(ENTITY).n_unique().cast(pl.Int64).alias(ENTITY_COUNT),
                ]
            )
            .rename({_GROUP: ENTITY})
        )
        if not per_owner:
            merged = merged.with_columns(pl.lit(None, dtype=pl.Utf8).alias(OWNER))
        return merged

    def finalize(self, totals: pl.DataFrame) -> pl.DataFrame:
        """Turn summed totals into the performance table."""
        if totals.is_empty():
            return pl.DataFrame(schema=PERFORMANCE_SCHEMA)

        frame = totals.with_columns(
            pl.col(_OWNER_LIST).list.len().cast(pl.Int64).alias(OWNERS)
        )
        frame = add_performance_metrics(frame, self.config)
        return frame.select(
            [pl.col(name).cast(dtype) for name, dtype in PERFORMANCE_SCHEMA.items()]
        )

    def aggregate(
        self,
        matches: MatchInput,
        group_by: AttributeExtractor | None = None,
        *,
        per_owner: bool = False,
    ) -> PerformanceResult:
        """Compute performance for every entity in ``matches``.

        Args:
            matches: Match records with ``entity_a``/``entity_b`` set.
            group_by: Optional callable mapping an entity key to a
                sub-attribute (for example one part of a combo). Entities
                mapping to None are left out. Defaults to None.
            per_owner: Keep one row per (entity, owner). Defaults to False.

        Returns:
            PerformanceResult; ``entities`` is unsorted, ``leaderboard`` is
            sorted by composite score.
        """
        with log_timing(logger, "aggregating entity performance"):
            frame, issues = self.prepare(matches)
            trials, entity_issues = self.trials(resolved_matches(frame))
            issues.extend(entity_issues)

            totals = self.entity_totals(trials, per_owner=per_owner)
            if group_by is not None:
                totals = self.merge_by_attribute(totals, group_by, per_owner)
            entities = self.finalize(totals)

        log_issue_summary(logger, issues, "entity performance")
        logger.info(
            f"Entity performance: {entities.height} rows from {trials.height} trials "
            f"(grouped={group_by is not None}, per_owner={per_owner})"
        )
        return PerformanceResult(
            entities=entities,
            issues=issues,
            unresolved=count_unresolved(frame),
            per_owner=per_owner,
            grouped=group_by is not None,
        )

    def breakdown(
        self,
        matches: MatchInput,
        extractors: Mapping[str, AttributeExtractor],
        *,
        label: str,
        per_owner: bool = False,
    ) -> PerformanceResult:
        """Merge entity totals by several attributes at once.

        The returned table stacks one block per extractor, tagged with its
        name in the ``label`` column.
        """
        frame, issues = self.prepare(matches)
        trials, entity_issues = self.trials(resolved_matches(frame))
        issues.extend(entity_issues)
        totals = self.entity_totals(trials, per_owner=per_owner)

        blocks = []
        for name, extractor in extractors.items():
            merged = self.finalize(
                self.merge_by_attribute(totals, extractor, per_owner)
            )
            blocks.append(
                merged.select(
                    [pl.lit(name, dtype=pl.Utf8).alias(label), pl.all()]
                )
            )

        if blocks:
            entities = pl.concat(blocks)
        else:
            entities = pl.DataFrame(
                schema={label: pl.Utf8, **PERFORMANCE_SCHEMA}
            )

        log_issue_summary(logger, issues, f"{label} breakdown")
        return PerformanceResult(
            entities=entities,
            issues=issues,
            unresolved=count_unresolved(frame),
            per_owner=per_owner,
            grouped=True,
        )


def aggregate_performance(
    matches: MatchInput,
    group_by: AttributeExtractor | None = None,
    *,
    per_owner: bool = False,
    config: PerformanceConfig | None = None,
    selection: SelectionConfig | None = None,
) -> PerformanceResult:
    """Function form of :meth:`EntityPerformanceAggregator.aggregate`."""
    aggregator = EntityPerformanceAggregator(config, selection=selection)
    return aggregator.aggregate(matches, group_by, per_owner=per_owner)
