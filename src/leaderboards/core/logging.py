"""
Centralized logging configuration for the leaderboards package.

Every engine logs through ``leaderboards.<module>`` loggers so a single call
to :func:`setup_logging` controls the output of the whole package.
"""

from __future__ import annotations

import logging
import sys
import time
from collections import Counter
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    import polars as pl

    from leaderboards.core.records import RecordIssue

ROOT_LOGGER_NAME = "leaderboards"


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    format_style: str = "detailed",
    include_timestamp: bool = True,
) -> logging.Logger:
    """Route every ``leaderboards.*`` logger to stderr (and optionally a file).

    Engines log one issue summary per run at WARNING and per-record detail
    at DEBUG, so ``level`` decides whether skipped and repaired records are
    listed individually. Calling this again replaces earlier handlers.

    Args:
        level: Level name or number. Defaults to logging.INFO.
        log_file: Also append records to this file. Defaults to None.
        format_style: "simple", "detailed" or "json" (one object per line,
            for log shippers). Defaults to "detailed".
        include_timestamp: Prefix "detailed" records with the time.
            Defaults to True.

    Returns:
        The package root logger.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    logger.handlers.clear()

    if format_style == "simple":
        format_string = "%(levelname)s: %(message)s"
    elif format_style == "json":
        format_string = '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        if include_timestamp:
            format_string = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
        else:
            format_string = "%(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"

    formatter = logging.Formatter(format_string)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module/component.

    Args:
        name: Name of the component (usually __name__).

    Returns:
        Logger instance for the component.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


@contextmanager
def log_timing(
    logger: logging.Logger, operation: str, level: int = logging.DEBUG
):
    """Log how long a standings or aggregation run took.

    Start and completion go out at ``level``; a failure is logged at ERROR
    with the elapsed time and then re-raised unchanged.

    Args:
        logger: Logger of the calling engine.
        operation: Short description, e.g. "computing global standings".
        level: Level for the start and completion records. Defaults to logging.DEBUG.

    Examples:
        >>> logger = get_logger(__name__)
        >>> with log_timing(logger, "computing standings"):
        ...     result = engine.compute(matches)
    """
    start_time = time.perf_counter()
    logger.log(level, f"Starting {operation}")

    try:
        yield
        elapsed_time = time.perf_counter() - start_time
        logger.log(level, f"Completed {operation} in {elapsed_time:.3f}s")
    except Exception as exception:
        elapsed_time = time.perf_counter() - start_time
        logger.error(
            f"Failed {operation} after {elapsed_time:.3f}s: {exception}"
        )
        raise


def log_dataframe_stats(
    logger: logging.Logger,
    dataframe: pl.DataFrame | None,
    name: str,
    level: int = logging.DEBUG,
) -> None:
    """Log row/column counts of a polars DataFrame."""
    if dataframe is None:
        logger.log(level, f"{name}: None")
        return
    logger.log(
        level,
        f"{name}: {dataframe.height:,} rows x {dataframe.width} cols",
    )


def log_issue_summary(
    logger: logging.Logger,
    issues: Iterable[RecordIssue],
    operation: str,
) -> None:
    """Emit one warning per run summarising skipped or repaired records.

    Per-record detail goes to DEBUG so large messy inputs do not flood the
    log.
    """
    issues = list(issues)
    if not issues:
        return

    counts = Counter(issue.kind.value for issue in issues)
    summary = ", ".join(f"{kind}={count}" for kind, count in sorted(counts.items()))
    logger.warning(f"{operation}: {len(issues)} record issue(s) ({summary})")

    if logger.isEnabledFor(logging.DEBUG):
        for issue in issues:
            logger.debug(
                f"{operation}: {issue.kind.value} at match_index={issue.match_index} "
                f"grouping_key={issue.grouping_key}: {issue.reason}"
            )
