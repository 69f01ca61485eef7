"""Swiss standings with head-to-head and median Buchholz tie-breaks."""

from leaderboards.standings.engine import (
    StandingsEngine,
    compute_standings,
    compute_standings_by_group,
)
from leaderboards.standings.tiebreaks import (
    OpponentStrengthCalculator,
    head_to_head_tiebreak,
    median_buchholz,
)

__all__ = [
    "StandingsEngine",
    "compute_standings",
    "compute_standings_by_group",
    "OpponentStrengthCalculator",
    "head_to_head_tiebreak",
    "median_buchholz",
]
