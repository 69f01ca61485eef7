"""Tournament standings and combo performance leaderboards."""

from __future__ import annotations

# Core functionality - Main API
from leaderboards.core import (
    IssueKind,
    MatchRecord,
    PerformanceConfig,
    PerformanceResult,
    RecordIssue,
    SelectionConfig,
    StandingsConfig,
    StandingsMode,
    StandingsResult,
    normalize_matches,
)
from leaderboards.performance import (
    ComboParser,
    EntityPerformanceAggregator,
    PartsCatalog,
    aggregate_performance,
    part_breakdown,
)
from leaderboards.standings import (
    StandingsEngine,
    compute_standings,
    compute_standings_by_group,
)

__version__ = "0.1.0"

__all__ = [
    # Standings
    "StandingsEngine",
    "compute_standings",
    "compute_standings_by_group",
    # Combo performance
    "EntityPerformanceAggregator",
    "aggregate_performance",
    "ComboParser",
    "PartsCatalog",
    "part_breakdown",
    # Records and configuration
    "MatchRecord",
    "RecordIssue",
    "IssueKind",
    "StandingsMode",
    "StandingsConfig",
    "PerformanceConfig",
    "SelectionConfig",
    "StandingsResult",
    "PerformanceResult",
    "normalize_matches",
    # Version
    "__version__",
]

# Note: For advanced functionality, import directly from submodules:
# - leaderboards.standings.tiebreaks: head-to-head TB and median Buchholz
# - leaderboards.performance.matchups: matchup tables and usage trends
# - leaderboards.core.logging: logging setup for scripts and notebooks
