"""Shrinkage strategies that discount win rates built on few matches."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

import numpy as np
import polars as pl

from leaderboards.core.constants import DEFAULT_SMOOTHING_K, DEFAULT_WILSON_Z

if TYPE_CHECKING:
    from typing import Any


@runtime_checkable
class ShrinkageStrategy(Protocol):
    """Protocol for sample-size shrinkage of rates."""

    def weight(self, total: pl.Expr) -> pl.Expr:
        """Compute the reliability weight for a sample of ``total`` trials.

        Args:
            total: Expression holding the number of trials.

        Returns:
            Expression in [0, 1] multiplied into the raw rate.
        """
        ...


@dataclass(frozen=True)
class NoShrinkage:
    """Use raw rates unchanged."""

    def weight(self, total: pl.Expr) -> pl.Expr:
        return pl.lit(1.0)


@dataclass(frozen=True)
class SampleSizeShrinkage:
    """Bayesian-average style discount: ``n / (n + k)``.

    With ``k = 10`` a perfect record over 10 matches is worth half of a
    perfect record, while 100 matches keep about 91%.
    """

    k: float = DEFAULT_SMOOTHING_K

    def weight(self, total: pl.Expr) -> pl.Expr:
        total = total.cast(pl.Float64)
        denominator = total + self.k
        return (
            pl.when(denominator > 0)
            .then(total / denominator)
            .otherwise(pl.lit(0.0))
        )


def get_shrinkage_strategy(mode: str, **kwargs: Any) -> ShrinkageStrategy:
    """Factory function to get a shrinkage strategy by name.

    Args:
        mode: Name of shrinkage mode ("sample_size" or "none").
        **kwargs: Additional parameters for the strategy.

    Returns:
        ShrinkageStrategy instance.

    Raises:
        ValueError: If the shrinkage mode is unknown.
    """
    strategy_classes = {
        "none": NoShrinkage,
        "sample_size": SampleSizeShrinkage,
    }

    strategy_class = strategy_classes.get(mode)
    if strategy_class is None:
        raise ValueError(f"Unknown shrinkage mode: {mode}")

    valid_fields = strategy_class.__dataclass_fields__.keys()
    filtered_kwargs = {
        key: value for key, value in kwargs.items() if key in valid_fields
    }
    return strategy_class(**filtered_kwargs)


def wilson_lower_bound(
    wins: np.ndarray | Sequence[float] | float,
    total: np.ndarray | Sequence[float] | float,
    z: float = DEFAULT_WILSON_Z,
) -> np.ndarray:
    """Lower bound of the Wilson score interval for a win proportion.

    Entries with no trials get 0 instead of NaN.

    Args:
        wins: Number of wins per entry.
        total: Number of trials per entry.
        z: Normal quantile of the interval. Defaults to 1.96 (95%).

    Returns:
        Array of lower bounds in [0, 1].
    """
    wins = np.asarray(wins, dtype=np.float64)
    total = np.asarray(total, dtype=np.float64)

    has_trials = total > 0
    safe_total = np.where(has_trials, total, 1.0)
    proportion = wins / safe_total
    z_squared = z * z

    denominator = 1.0 + z_squared / safe_total
    center = proportion + z_squared / (2.0 * safe_total)
    spread = z * np.sqrt(
        (proportion * (1.0 - proportion) + z_squared / (4.0 * safe_total))
        / safe_total
    )
    return np.where(has_trials, (center - spread) / denominator, 0.0)
