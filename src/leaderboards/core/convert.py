"""Input normalization: raw match rows into the canonical match frame."""

from __future__ import annotations

import dataclasses
import math
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING

import polars as pl

from leaderboards.core.constants import (
    COLUMN_ALIASES,
    ENTITY,
    ENTITY_A,
    ENTITY_B,
    GROUPING_KEY,
    IDENTIFIER_COLUMNS,
    IS_PRACTICE,
    IS_RESOLVED,
    IS_VALID,
    MATCH_INDEX,
    NUMERIC_COLUMNS,
    OPPONENT,
    OPPONENT_ENTITY,
    PARTICIPANT,
    PARTICIPANT_A,
    PARTICIPANT_B,
    PLAYED_AT,
    POINTS_AGAINST,
    POINTS_AWARDED,
    POINTS_FOR,
    SCORE_A,
    SCORE_B,
    SIDE,
    WINNER,
    WON,
)
from leaderboards.core.records import IssueKind, MatchRecord, RecordIssue

if TYPE_CHECKING:
    from typing import Any, Iterable, Mapping

    MatchInput = pl.DataFrame | pl.LazyFrame | Iterable[MatchRecord | Mapping[str, Any]]

MATCH_SCHEMA: dict[str, pl.DataType] = {
    GROUPING_KEY: pl.Utf8,
    PARTICIPANT_A: pl.Utf8,
    PARTICIPANT_B: pl.Utf8,
    WINNER: pl.Utf8,
    SCORE_A: pl.Int64,
    SCORE_B: pl.Int64,
    POINTS_AWARDED: pl.Int64,
    ENTITY_A: pl.Utf8,
    ENTITY_B: pl.Utf8,
    IS_PRACTICE: pl.Boolean,
    PLAYED_AT: pl.Datetime("us"),
}


def _aliases_for(column: str) -> list[str]:
    return [alias for alias, target in COLUMN_ALIASES.items() if target == column]


# Canonical name first, then its aliases in declaration order
_SOURCE_NAMES: dict[str, tuple[str, ...]] = {
    column: (column, *_aliases_for(column)) for column in MATCH_SCHEMA
}


def _to_identifier(value: Any) -> str | None:
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    return text if text.strip() else None


def _to_int(value: Any) -> int:
    """Coerce a numeric field; missing or unparseable values count as 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return 0
        return int(parsed) if math.isfinite(parsed) else 0
    return 0


def _to_flag(value: Any) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "t"}:
            return True
        if lowered in {"false", "0", "no", "f"}:
            return False
        return None
    if isinstance(value, (int, float)):
        return bool(value)
    return None


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _to_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return _naive_utc(parsed)
    return None


_COERCERS = {
    **{column: _to_identifier for column in IDENTIFIER_COLUMNS},
    **{column: _to_int for column in NUMERIC_COLUMNS},
    IS_PRACTICE: _to_flag,
    PLAYED_AT: _to_datetime,
}


def _row_to_mapping(row: Any) -> Mapping[str, Any]:
    if isinstance(row, MatchRecord):
        return dataclasses.asdict(row)
    if hasattr(row, "keys") and hasattr(row, "get"):
        return row
    # Unusable rows fall through as empty records and are reported as malformed
    return {}


def _lookup(row: Mapping[str, Any], column: str) -> Any:
    for name in _SOURCE_NAMES[column]:
        value = row.get(name)
        if value is not None and not (isinstance(value, str) and not value.strip()):
            return value
    return None


def _frame_from_rows(rows: Iterable[Any]) -> pl.DataFrame:
    columns: dict[str, list[Any]] = {column: [] for column in MATCH_SCHEMA}
    for row in rows:
        mapping = _row_to_mapping(row)
        for column, coerce in _COERCERS.items():
            columns[column].append(coerce(_lookup(mapping, column)))
    return pl.DataFrame(columns, schema=MATCH_SCHEMA)


def _frame_from_dataframe(frame: pl.DataFrame) -> pl.DataFrame:
    if frame.height == 0:
        return pl.DataFrame(schema=MATCH_SCHEMA)

    expressions = []
    for column, dtype in MATCH_SCHEMA.items():
        sources = [name for name in _SOURCE_NAMES[column] if name in frame.columns]
        if not sources:
            missing = 0 if dtype == pl.Int64 else None
            expressions.append(pl.lit(missing, dtype=dtype).alias(column))
            continue

        casted = []
        for name in sources:
            source_dtype = frame.schema[name]
            if dtype == pl.Utf8:
                expression = pl.col(name).cast(pl.Utf8, strict=False)
                expression = (
                    pl.when(expression.str.strip_chars() == "")
                    .then(None)
                    .otherwise(expression)
                )
            elif dtype == pl.Int64:
                if source_dtype == pl.Utf8:
                    expression = (
                        pl.col(name).str.strip_chars().cast(pl.Float64, strict=False)
                    )
                else:
                    expression = pl.col(name).cast(pl.Float64, strict=False)
                expression = (
                    pl.when(expression.is_finite())
                    .then(expression)
                    .otherwise(None)
                    .cast(pl.Int64, strict=False)
                )
            elif dtype == pl.Boolean:
                if source_dtype == pl.Utf8:
                    lowered = pl.col(name).str.strip_chars().str.to_lowercase()
                    expression = (
                        pl.when(lowered.is_in(["true", "1", "yes", "t"]))
                        .then(True)
                        .when(lowered.is_in(["false", "0", "no", "f"]))
                        .then(False)
                        .otherwise(None)
                    )
                else:
                    expression = pl.col(name).cast(pl.Boolean, strict=False)
            else:
                if source_dtype == pl.Utf8:
                    # Offsets are converted to UTC, naive strings read as UTC
                    expression = (
                        pl.col(name)
                        .str.to_datetime(
                            strict=False, time_unit="us", time_zone="UTC"
                        )
                        .dt.replace_time_zone(None)
                    )
                elif isinstance(source_dtype, pl.Datetime) and source_dtype.time_zone:
                    expression = (
                        pl.col(name)
                        .dt.convert_time_zone("UTC")
                        .dt.replace_time_zone(None)
                    )
                else:
                    expression = pl.col(name)
                expression = expression.cast(pl.Datetime("us"), strict=False)
            casted.append(expression)

        combined = pl.coalesce(casted) if len(casted) > 1 else casted[0]
        if dtype == pl.Int64:
            combined = combined.fill_null(0)
        expressions.append(combined.alias(column))

    return frame.with_columns(expressions).select(list(MATCH_SCHEMA))


def _negative_value_issues(frame: pl.DataFrame) -> list[RecordIssue]:
    issues: list[RecordIssue] = []
    for column in NUMERIC_COLUMNS:
        negatives = frame.filter(pl.col(column) < 0).select(
            [MATCH_INDEX, GROUPING_KEY, column]
        )
        for row in negatives.iter_rows(named=True):
            issues.append(
                RecordIssue(
                    kind=IssueKind.NEGATIVE_VALUE,
                    reason=f"{column}={row[column]} clamped to 0",
                    match_index=row[MATCH_INDEX],
                    grouping_key=row[GROUPING_KEY],
                )
            )
    return issues


def _malformed_reason() -> pl.Expr:
    participant_a = pl.col(PARTICIPANT_A)
    participant_b = pl.col(PARTICIPANT_B)
    winner = pl.col(WINNER)
    return (
        pl.when(participant_a.is_null() | participant_b.is_null())
        .then(pl.lit("missing participant identifier"))
        .when(participant_a == participant_b)
        .then(pl.lit("participant matched against itself"))
        .when(
            winner.is_not_null()
            & (winner != participant_a)
            & (winner != participant_b)
        )
        .then(pl.lit("winner matches neither participant"))
        .otherwise(pl.lit(None, dtype=pl.Utf8))
    )


def normalize_matches(
    matches: MatchInput,
) -> tuple[pl.DataFrame, list[RecordIssue]]:
    """Bring any supported match input into the canonical match frame.

    Accepts a polars DataFrame/LazyFrame or any iterable of ``MatchRecord``
    objects and mappings. Column aliases (camelCase names and the source
    system's ``player1_name``/``winner_name``/``player1_beyblade`` style
    names) are resolved to the canonical columns.

    Data problems never raise. Missing or unparseable numbers become 0,
    negative numbers are clamped to 0, and records that cannot be
    attributed are flagged ``is_valid=False``. Each problem yields one
    :class:`RecordIssue`.

    Args:
        matches: Match records to normalize.

    Returns:
        Tuple of (frame with ``match_index``, the canonical columns,
        ``is_valid`` and ``is_resolved``; list of issues).

    Raises:
        TypeError: If ``matches`` is None or a string instead of a collection.
    """
    if matches is None:
        raise TypeError("matches must be a collection of match records, got None")
    if isinstance(matches, (str, bytes)):
        raise TypeError("matches must be a collection of match records, not a string")

    if isinstance(matches, pl.LazyFrame):
        matches = matches.collect()

    if isinstance(matches, pl.DataFrame):
        frame = _frame_from_dataframe(matches)
    else:
        frame = _frame_from_rows(matches)

    frame = frame.with_columns(
        pl.int_range(0, pl.len(), dtype=pl.Int64).alias(MATCH_INDEX)
    ).select([MATCH_INDEX, *MATCH_SCHEMA])

    issues = _negative_value_issues(frame)
    frame = frame.with_columns(
        [pl.col(column).clip(lower_bound=0) for column in NUMERIC_COLUMNS]
    )

    frame = frame.with_columns(_malformed_reason().alias("_reason"))
    for row in (
        frame.filter(pl.col("_reason").is_not_null())
        .select([MATCH_INDEX, GROUPING_KEY, "_reason"])
        .iter_rows(named=True)
    ):
        issues.append(
            RecordIssue(
                kind=IssueKind.MALFORMED_RECORD,
                reason=row["_reason"],
                match_index=row[MATCH_INDEX],
                grouping_key=row[GROUPING_KEY],
            )
        )

    frame = frame.with_columns(
        pl.col("_reason").is_null().alias(IS_VALID)
    ).with_columns(
        (pl.col(IS_VALID) & pl.col(WINNER).is_not_null()).alias(IS_RESOLVED)
    ).drop("_reason")

    issues.sort(key=lambda issue: (issue.match_index is None, issue.match_index or 0))
    return frame, issues


def expand_sides(resolved: pl.DataFrame) -> pl.DataFrame:
    """Turn each resolved match into one row per participant.

    Rows come out in input order, side A before side B, so grouping with
    ``maintain_order=True`` keeps first-appearance order.

    Returns:
        DataFrame with columns: match_index, side, participant, opponent,
        won, points_for, points_against, points_awarded, entity,
        opponent_entity, grouping_key, played_at.
    """
    sides = []
    for side, (own, other, own_score, other_score, own_entity, other_entity) in enumerate(
        [
            (PARTICIPANT_A, PARTICIPANT_B, SCORE_A, SCORE_B, ENTITY_A, ENTITY_B),
            (PARTICIPANT_B, PARTICIPANT_A, SCORE_B, SCORE_A, ENTITY_B, ENTITY_A),
        ]
    ):
        sides.append(
            resolved.select(
                [
                    pl.col(MATCH_INDEX),
                    pl.lit(side, dtype=pl.Int8).alias(SIDE),
                    pl.col(own).alias(PARTICIPANT),
                    pl.col(other).alias(OPPONENT),
                    (pl.col(WINNER) == pl.col(own)).alias(WON),
                    pl.col(own_score).alias(POINTS_FOR),
                    pl.col(other_score).alias(POINTS_AGAINST),
                    pl.col(POINTS_AWARDED),
                    pl.col(own_entity).alias(ENTITY),
                    pl.col(other_entity).alias(OPPONENT_ENTITY),
                    pl.col(GROUPING_KEY),
                    pl.col(PLAYED_AT),
                ]
            )
        )
    return pl.concat(sides).sort([MATCH_INDEX, SIDE])


def resolved_matches(frame: pl.DataFrame) -> pl.DataFrame:
    """Valid records with a winner, in input order."""
    return frame.filter(pl.col(IS_RESOLVED))


def count_unresolved(frame: pl.DataFrame) -> int:
    """Valid records that have no winner yet."""
    return frame.filter(pl.col(IS_VALID) & pl.col(WINNER).is_null()).height
