"""Caller-driven selection of which match records enter an aggregation."""

from __future__ import annotations

import polars as pl

from leaderboards.core.config import SelectionConfig
from leaderboards.core.constants import GROUPING_KEY, IS_PRACTICE
from leaderboards.core.logging import get_logger
from leaderboards.core.records import IssueKind, RecordIssue

logger = get_logger(__name__)


def find_inconsistent_groupings(frame: pl.DataFrame) -> list[RecordIssue]:
    """Report grouping keys whose records disagree on the practice flag.

    Records without a flag do not count as a conflicting value.
    """
    if frame.is_empty():
        return []

    conflicting = (
        frame.filter(
            pl.col(GROUPING_KEY).is_not_null() & pl.col(IS_PRACTICE).is_not_null()
        )
        .group_by(GROUPING_KEY, maintain_order=True)
        .agg(
            [
                pl.col(IS_PRACTICE).sum().alias("practice_records"),
                (~pl.col(IS_PRACTICE)).sum().alias("regular_records"),
            ]
        )
        .filter(
            (pl.col("practice_records") > 0) & (pl.col("regular_records") > 0)
        )
    )

    issues = []
    for row in conflicting.iter_rows(named=True):
        issues.append(
            RecordIssue(
                kind=IssueKind.INCONSISTENT_GROUPING,
                reason=(
                    f"{row['practice_records']} practice and "
                    f"{row['regular_records']} non-practice records"
                ),
                grouping_key=row[GROUPING_KEY],
            )
        )
        logger.warning(
            f"Grouping {row[GROUPING_KEY]!r} mixes practice flags "
            f"(practice={row['practice_records']}, regular={row['regular_records']}); "
            "applying caller filter per record"
        )
    return issues


def select_matches(
    frame: pl.DataFrame, config: SelectionConfig
) -> tuple[pl.DataFrame, list[RecordIssue]]:
    """Apply the caller's practice and grouping policy to a normalized frame.

    Practice exclusion is decided per record from its own flag, never
    reinterpreted from the rest of its grouping. Records with no flag count
    as non-practice.

    Args:
        frame: Frame produced by ``normalize_matches``.
        config: Caller selection policy.

    Returns:
        Tuple of (selected frame, inconsistent grouping issues).
    """
    if config is None:
        raise TypeError("config must be a SelectionConfig, got None")

    issues = find_inconsistent_groupings(frame)

    selected = frame
    if config.exclude_practice:
        selected = selected.filter(~pl.col(IS_PRACTICE).fill_null(False))

    if config.grouping_keys is not None:
        keys = [str(key) for key in config.grouping_keys]
        selected = selected.filter(pl.col(GROUPING_KEY).is_in(keys))

    logger.debug(
        f"Selected {selected.height} of {frame.height} records "
        f"(exclude_practice={config.exclude_practice}, "
        f"grouping_keys={config.grouping_keys})"
    )
    return selected, issues
