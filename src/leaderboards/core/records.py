"""Record types exchanged with callers: match input, standings and combo rows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional


class StandingsMode(str, Enum):
    """How a participant's primary score is accumulated."""

    PER_TOURNAMENT = "per_tournament"
    GLOBAL = "global"

    @classmethod
    def parse(cls, value: StandingsMode | str) -> StandingsMode:
        """Resolve a mode from an enum member or its string spelling.

        Accepts ``"per_tournament"``, ``"perTournament"`` and ``"global"``.

        Raises:
            ValueError: If the value names no known mode.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().replace("-", "_")
            if normalized == "perTournament":
                normalized = cls.PER_TOURNAMENT.value
            for member in cls:
                if member.value == normalized.lower():
                    return member
        raise ValueError(f"Unknown standings mode: {value!r}")


class IssueKind(str, Enum):
    MALFORMED_RECORD = "malformed_record"
    NEGATIVE_VALUE = "negative_value"
    MISSING_ENTITY = "missing_entity"
    INCONSISTENT_GROUPING = "inconsistent_grouping"


@dataclass(frozen=True)
class RecordIssue:
    """A data-quality problem found while aggregating.

    Issues never abort an aggregation; they travel next to the partial
    result so callers can surface a warning.
    """

    kind: IssueKind
    reason: str
    match_index: Optional[int] = None
    grouping_key: Optional[str] = None


@dataclass(frozen=True)
class MatchRecord:
    """One head-to-head match as handed over by the data-access layer.

    Identifiers are compared by exact string equality, so callers must
    canonicalize names before building records.
    """

    participant_a: Optional[str] = None
    participant_b: Optional[str] = None
    winner: Optional[str] = None
    score_a: int = 0
    score_b: int = 0
    points_awarded: int = 0
    entity_a: Optional[str] = None
    entity_b: Optional[str] = None
    grouping_key: Optional[str] = None
    is_practice: Optional[bool] = None
    played_at: Optional[datetime] = None


@dataclass
class ParticipantStanding:
    participant: str
    wins: int
    losses: int
    score: int
    tb: int
    buchholz: int
    points_diff: int
    rank: int
    points_for: int = 0
    points_against: int = 0
    total_matches: int = 0
    win_rate: float = 0.0
    tournaments: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ParticipantStanding:
        return cls(**{key: row[key] for key in cls.__dataclass_fields__})


@dataclass
class EntityPerformance:
    entity: str
    wins: int
    losses: int
    total_matches: int
    total_points: int
    win_rate: float
    weighted_win_rate: float
    avg_points_per_match: float
    composite_score: float
    owner: Optional[str] = None
    wilson_lower_bound: float = 0.0
    owners: int = 0
    entity_count: int = 1

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> EntityPerformance:
        values = {
            key: row[key] for key in cls.__dataclass_fields__ if key in row
        }
        return cls(**values)
