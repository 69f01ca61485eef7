"""Combo and part performance leaderboards."""

from leaderboards.performance.aggregator import (
    EntityPerformanceAggregator,
    add_performance_metrics,
    aggregate_performance,
)
from leaderboards.performance.matchups import (
    best_matchups,
    matchup_breakdown,
    usage_trend,
    worst_matchups,
)
from leaderboards.performance.parts import (
    Bit,
    Blade,
    ComboParser,
    ParsedCombo,
    PartsCatalog,
    parse_combos,
    part_breakdown,
)

__all__ = [
    # Aggregation
    "EntityPerformanceAggregator",
    "aggregate_performance",
    "add_performance_metrics",
    # Parts
    "PartsCatalog",
    "Blade",
    "Bit",
    "ComboParser",
    "ParsedCombo",
    "parse_combos",
    "part_breakdown",
    # Matchups
    "matchup_breakdown",
    "best_matchups",
    "worst_matchups",
    "usage_trend",
]
