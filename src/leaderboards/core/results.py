"""Result dataclasses returned by the standings and performance engines."""

from __future__ import annotations

from dataclasses import dataclass, field

import polars as pl

from leaderboards.core.constants import COMPOSITE_SCORE, LOSSES, WINS
from leaderboards.core.records import (
    EntityPerformance,
    IssueKind,
    ParticipantStanding,
    RecordIssue,
    StandingsMode,
)


@dataclass
class _IssueReport:
    issues: list[RecordIssue] = field(default_factory=list)
    unresolved: int = 0

    @property
    def skipped(self) -> int:
        """Number of records left out because they were malformed."""
        return sum(
            1 for issue in self.issues if issue.kind == IssueKind.MALFORMED_RECORD
        )

    def issues_of(self, kind: IssueKind) -> list[RecordIssue]:
        return [issue for issue in self.issues if issue.kind == kind]


@dataclass
class StandingsResult(_IssueReport):
    """Ranked standings for one grouping (or the global view)."""

    standings: pl.DataFrame = field(default_factory=pl.DataFrame)
    mode: StandingsMode = StandingsMode.PER_TOURNAMENT
    matches_counted: int = 0

    def to_records(self) -> list[ParticipantStanding]:
        return [
            ParticipantStanding.from_row(row)
            for row in self.standings.iter_rows(named=True)
        ]

    def is_conserved(self) -> bool:
        """Every counted match produced exactly one win and one loss."""
        if self.standings.is_empty():
            return self.matches_counted == 0
        totals = self.standings.select(
            [pl.col(WINS).sum(), pl.col(LOSSES).sum()]
        ).row(0)
        return totals[0] == totals[1] == self.matches_counted


@dataclass
class PerformanceResult(_IssueReport):
    """Per-combo (or per-part) performance.

    ``entities`` keeps aggregation order; use :attr:`leaderboard` or
    :meth:`sorted_by` for ranked views of the same data.
    """

    entities: pl.DataFrame = field(default_factory=pl.DataFrame)
    per_owner: bool = False
    grouped: bool = False

    @property
    def leaderboard(self) -> pl.DataFrame:
        return self.sorted_by(COMPOSITE_SCORE)

    def sorted_by(self, column: str, descending: bool = True) -> pl.DataFrame:
        """Stable sort of the entity table by any of its columns."""
        if column not in self.entities.columns:
            raise ValueError(
                f"Unknown column {column!r}; expected one of {self.entities.columns}"
            )
        return self.entities.sort(
            column, descending=descending, maintain_order=True
        )

    def top(self, count: int = 10) -> pl.DataFrame:
        return self.leaderboard.head(count)

    def to_records(self, sort: bool = True) -> list[EntityPerformance]:
        frame = self.leaderboard if sort else self.entities
        return [EntityPerformance.from_row(row) for row in frame.iter_rows(named=True)]
