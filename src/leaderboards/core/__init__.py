"""Core components shared by the standings and performance engines."""

from leaderboards.core.config import (
    PerformanceConfig,
    SelectionConfig,
    StandingsConfig,
)
from leaderboards.core.convert import (
    count_unresolved,
    expand_sides,
    normalize_matches,
    resolved_matches,
)
from leaderboards.core.logging import get_logger, log_timing, setup_logging
from leaderboards.core.records import (
    EntityPerformance,
    IssueKind,
    MatchRecord,
    ParticipantStanding,
    RecordIssue,
    StandingsMode,
)
from leaderboards.core.results import PerformanceResult, StandingsResult
from leaderboards.core.selection import (
    find_inconsistent_groupings,
    select_matches,
)
from leaderboards.core.smoothing import (
    NoShrinkage,
    SampleSizeShrinkage,
    ShrinkageStrategy,
    get_shrinkage_strategy,
    wilson_lower_bound,
)

__all__ = [
    # Config
    "StandingsConfig",
    "PerformanceConfig",
    "SelectionConfig",
    # Convert
    "normalize_matches",
    "expand_sides",
    "resolved_matches",
    "count_unresolved",
    # Records
    "MatchRecord",
    "ParticipantStanding",
    "EntityPerformance",
    "StandingsMode",
    "IssueKind",
    "RecordIssue",
    # Results
    "StandingsResult",
    "PerformanceResult",
    # Selection
    "select_matches",
    "find_inconsistent_groupings",
    # Smoothing
    "ShrinkageStrategy",
    "NoShrinkage",
    "SampleSizeShrinkage",
    "get_shrinkage_strategy",
    "wilson_lower_bound",
    # Logging
    "setup_logging",
    "get_logger",
    "log_timing",
]
