"""
Swiss-style standings with a deterministic tie-break cascade.

Participants are ordered by ``score``, then ``tb`` (wins against opponents
on the same score), then median ``buchholz``, then ``points_diff``. Rows
still tied after the fourth key keep the order in which the participants
first appear in the resolved input, and every row gets its own rank.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import polars as pl

from leaderboards.core.config import SelectionConfig, StandingsConfig
from leaderboards.core.constants import (
    BUCHHOLZ,
    GROUPING_KEY,
    IS_VALID,
    LOSSES,
    OPPONENT,
    PARTICIPANT,
    POINTS_AGAINST,
    POINTS_AWARDED,
    POINTS_DIFF,
    POINTS_FOR,
    RANK,
    SCORE,
    STANDINGS_SORT_KEYS,
    TB,
    TOTAL_MATCHES,
    TOURNAMENTS,
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
from leaderboards.core.logging import (
    get_logger,
    log_issue_summary,
    log_timing,
)
from leaderboards.core.records import RecordIssue, StandingsMode
from leaderboards.core.results import StandingsResult
from leaderboards.core.selection import select_matches
from leaderboards.standings.tiebreaks import (
    WINS_AGAINST,
    OpponentStrengthCalculator,
    head_to_head_tiebreak,
)

if TYPE_CHECKING:
    from leaderboards.core.convert import MatchInput

logger = get_logger(__name__)

STANDINGS_SCHEMA: dict[str, pl.DataType] = {
    RANK: pl.Int64,
    PARTICIPANT: pl.Utf8,
    WINS: pl.Int64,
    LOSSES: pl.Int64,
    SCORE: pl.Int64,
    TB: pl.Int64,
    BUCHHOLZ: pl.Int64,
    POINTS_DIFF: pl.Int64,
    POINTS_FOR: pl.Int64,
    POINTS_AGAINST: pl.Int64,
    TOTAL_MATCHES: pl.Int64,
    WIN_RATE: pl.Float64,
    TOURNAMENTS: pl.Int64,
}

_FIRST_SEEN = "_first_seen"
_MATCH_SCORE = "_match_score"


class StandingsEngine:
    """Compute ranked standings from match records.

    Each call rebuilds everything from its input; the engine keeps no state
    between calls, so one instance can serve many groupings or threads.

    Examples:
        >>> engine = StandingsEngine(StandingsConfig(mode="per_tournament"))
        >>> result = engine.compute(matches)
        >>> result.standings.head(8)
    """

    def __init__(
        self,
        config: StandingsConfig | None = None,
        *,
        selection: SelectionConfig | None = None,
    ) -> None:
        self.config = config or StandingsConfig()
        self.selection = selection
        self.opponent_strength = OpponentStrengthCalculator(
            trim_above=self.config.trim_above
        )

    @property
    def mode(self) -> StandingsMode:
        return self.config.mode

    def _prepare(
        self, matches: MatchInput
    ) -> tuple[pl.DataFrame, list[RecordIssue]]:
        frame, issues = normalize_matches(matches)
        if self.selection is not None:
            frame, grouping_issues = select_matches(frame, self.selection)
            issues.extend(grouping_issues)
        return frame, issues

    def _score_expression(self) -> pl.Expr:
        if self.mode is StandingsMode.GLOBAL:
            return (
                pl.when(pl.col(WON))
                .then(pl.col(POINTS_AWARDED))
                .otherwise(pl.lit(0))
            )
        return pl.col(WON).cast(pl.Int64)

    def rank(self, resolved: pl.DataFrame) -> pl.DataFrame:
        """Rank participants of already validated, resolved matches.

        Args:
            resolved: Canonical match frame restricted to resolved records.

        Returns:
            Standings frame (see ``STANDINGS_SCHEMA``), best participant first.
        """
        if resolved.is_empty():
            return pl.DataFrame(schema=STANDINGS_SCHEMA)

        rows = expand_sides(resolved).with_columns(
            self._score_expression().alias(_MATCH_SCORE)
        )

        totals = (
            rows.group_by(PARTICIPANT, maintain_order=True)
            .agg(
                [
                    pl.col(WON).sum().cast(pl.Int64).alias(WINS),
                    (~pl.col(WON)).sum().cast(pl.Int64).alias(LOSSES),
                    pl.col(_MATCH_SCORE).sum().cast(pl.Int64).alias(SCORE),
                    pl.col(POINTS_FOR).sum().cast(pl.Int64),
                    pl.col(POINTS_AGAINST).sum().cast(pl.Int64),
                    pl.col(GROUPING_KEY)
                    .drop_nulls()
                    .n_unique()
                    .cast(pl.Int64)
                    .alias(TOURNAMENTS),
                ]
            )
            .with_columns(pl.int_range(0, pl.len()).alias(_FIRST_SEEN))
        )

        scores = totals.select([PARTICIPANT, SCORE])
        wins_against = (
            rows.filter(pl.col(WON))
            .group_by([PARTICIPANT, OPPONENT])
            .agg(pl.len().alias(WINS_AGAINST))
        )
        opponents = rows.select([PARTICIPANT, OPPONENT])

        tiebreak = head_to_head_tiebreak(scores, wins_against)
        buchholz = self.opponent_strength.compute(scores, opponents)

        standings = (
            totals.join(tiebreak, on=PARTICIPANT, how="left")
            .join(buchholz, on=PARTICIPANT, how="left")
            .with_columns(
                [
                    (pl.col(POINTS_FOR) - pl.col(POINTS_AGAINST)).alias(
                        POINTS_DIFF
                    ),
                    (pl.col(WINS) + pl.col(LOSSES)).alias(TOTAL_MATCHES),
                ]
            )
            .with_columns(
                (
                    pl.col(WINS).cast(pl.Float64)
                    / pl.col(TOTAL_MATCHES).cast(pl.Float64)
                ).alias(WIN_RATE)
            )
            # Joins may reorder rows; restore first-appearance order so the
            # stable sort leaves residual ties in that order.
            .sort(_FIRST_SEEN)
            .sort(
                list(STANDINGS_SORT_KEYS),
                descending=True,
                maintain_order=True,
            )
            .with_columns(
                pl.int_range(1, pl.len() + 1, dtype=pl.Int64).alias(RANK)
            )
        )

        return standings.select(
            [pl.col(name).cast(dtype) for name, dtype in STANDINGS_SCHEMA.items()]
        )

    def _build_result(
        self, frame: pl.DataFrame, issues: list[RecordIssue]
    ) -> StandingsResult:
        resolved = resolved_matches(frame)
        standings = self.rank(resolved)
        return StandingsResult(
            standings=standings,
            issues=issues,
            unresolved=count_unresolved(frame),
            mode=self.mode,
            matches_counted=resolved.height,
        )

    def compute(self, matches: MatchInput) -> StandingsResult:
        """Compute standings for one grouping, or all records in global mode.

        Args:
            matches: Match records (see ``normalize_matches`` for accepted
                shapes). Identifiers must already be canonicalized.

        Returns:
            StandingsResult with the ranked frame and any record issues.

        Raises:
            TypeError: If ``matches`` is None.
        """
        with log_timing(logger, f"computing {self.mode.value} standings"):
            frame, issues = self._prepare(matches)
            result = self._build_result(frame, issues)

        log_issue_summary(logger, result.issues, "standings")
        logger.info(
            f"Standings ({self.mode.value}): {result.standings.height} participants "
            f"from {result.matches_counted} matches "
            f"(unresolved={result.unresolved}, skipped={result.skipped})"
        )
        return result

    def compute_by_group(self, matches: MatchInput) -> dict[str, StandingsResult]:
        """Compute independent standings for every grouping key.

        Records without a grouping key cannot be placed in any tournament
        and are left out with a warning.

        Returns:
            Mapping of grouping key to its StandingsResult, in order of first
            appearance.
        """
        with log_timing(logger, f"computing {self.mode.value} standings by group"):
            frame, issues = self._prepare(matches)

            ungrouped = frame.filter(
                pl.col(GROUPING_KEY).is_null() & pl.col(IS_VALID)
            ).height
            if ungrouped:
                logger.warning(
                    f"{ungrouped} valid record(s) have no grouping key and were left out"
                )

            results: dict[str, StandingsResult] = {}
            grouped = frame.filter(pl.col(GROUPING_KEY).is_not_null())
            for group in grouped.partition_by(GROUPING_KEY, maintain_order=True):
                key = group[GROUPING_KEY][0]
                group_issues = [issue for issue in issues if issue.grouping_key == key]
                results[key] = self._build_result(group, group_issues)

        log_issue_summary(logger, issues, "standings by group")
        logger.info(f"Standings computed for {len(results)} groupings")
        return results


def compute_standings(
    matches: MatchInput,
    mode: StandingsMode | str = StandingsMode.PER_TOURNAMENT,
    *,
    config: StandingsConfig | None = None,
    selection: SelectionConfig | None = None,
) -> StandingsResult:
    """Rank participants of one grouping (or the global view).

    Args:
        matches: Match records.
        mode: "per_tournament" (1 point per win) or "global" (awarded
            points per win). Ignored when ``config`` is given.
        config: Full engine configuration. Defaults to None.
        selection: Optional caller policy for practice exclusion and
            grouping filters. Defaults to None (all records).

    Returns:
        StandingsResult.

    Raises:
        ValueError: If ``mode`` is not a known mode.
        TypeError: If ``matches`` is None.
    """
    if config is None:
        config = StandingsConfig(mode=StandingsMode.parse(mode))
    return StandingsEngine(config, selection=selection).compute(matches)


def compute_standings_by_group(
    matches: MatchInput,
    mode: StandingsMode | str = StandingsMode.PER_TOURNAMENT,
    *,
    config: StandingsConfig | None = None,
    selection: SelectionConfig | None = None,
) -> dict[str, StandingsResult]:
    """Per-tournament standings for every grouping key in ``matches``."""
    if config is None:
        config = StandingsConfig(mode=StandingsMode.parse(mode))
    return StandingsEngine(config, selection=selection).compute_by_group(matches)
