"""Configuration dataclasses for standings and performance aggregation."""

from dataclasses import dataclass, field
from typing import Collection, Optional

from leaderboards.core.constants import (
    DEFAULT_BUCHHOLZ_TRIM_ABOVE,
    DEFAULT_COMPOSITE_MULTIPLIER,
    DEFAULT_MATCHUP_MIN_MATCHES,
    DEFAULT_POINTS_SCALE,
    DEFAULT_POINTS_SOURCE,
    DEFAULT_SMOOTHING_K,
    DEFAULT_SMOOTHING_MODE,
    DEFAULT_WILSON_Z,
)
from leaderboards.core.records import StandingsMode


@dataclass
class StandingsConfig:
    """Configuration for the standings engine."""

    # "per_tournament": 1 point per win, "global": awarded points per win
    mode: StandingsMode = StandingsMode.PER_TOURNAMENT

    # Median Buchholz drops extremes only above this many opponents
    trim_above: int = DEFAULT_BUCHHOLZ_TRIM_ABOVE

    def __post_init__(self) -> None:
        self.mode = StandingsMode.parse(self.mode)


@dataclass
class PerformanceConfig:
    """Configuration for combo performance aggregation."""

    # Shrinkage applied to win rates
    smoothing_mode: str = DEFAULT_SMOOTHING_MODE
    smoothing_k: float = DEFAULT_SMOOTHING_K

    # composite = weighted * (avg_points / points_scale) * multiplier
    points_scale: float = DEFAULT_POINTS_SCALE
    composite_multiplier: float = DEFAULT_COMPOSITE_MULTIPLIER

    # "awarded" credits the match's awarded points, "score" the side's score
    points_source: str = DEFAULT_POINTS_SOURCE

    wilson_z: float = DEFAULT_WILSON_Z
    matchup_min_matches: int = DEFAULT_MATCHUP_MIN_MATCHES


@dataclass
class SelectionConfig:
    """Caller policy for which match records enter an aggregation.

    ``exclude_practice`` has no default: whether practice or exhibition
    events count is always the caller's decision.
    """

    exclude_practice: bool
    grouping_keys: Optional[Collection[str]] = field(default=None)
