from __future__ import annotations

"""
Leaderboard CLI: load a match export and print or write a leaderboard.

Subcommands:
  standings  Swiss standings (one tournament, every tournament, or global)
  combos     Combo performance leaderboard
  parts      Per-part performance (needs a parts database export)

Usage examples:
  leaderboards standings matches.jsonl --exclude-practice --tournament t-42
  leaderboards standings matches.parquet --include-practice --mode global --top 20
  leaderboards combos matches.csv --exclude-practice --per-owner -o combos.parquet
  leaderboards parts matches.json --exclude-practice --parts-file parts.json
"""

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Optional

import polars as pl

from leaderboards import __version__
from leaderboards.core.config import PerformanceConfig, SelectionConfig, StandingsConfig
from leaderboards.core.constants import PART_TYPES
from leaderboards.core.logging import get_logger, log_dataframe_stats, setup_logging
from leaderboards.core.records import StandingsMode
from leaderboards.core.sentry import init_sentry
from leaderboards.performance.aggregator import EntityPerformanceAggregator
from leaderboards.performance.parts import ComboParser, PartsCatalog, part_breakdown
from leaderboards.standings.engine import StandingsEngine

logger = get_logger(__name__)

READERS = {
    ".csv": pl.read_csv,
    ".parquet": pl.read_parquet,
    ".jsonl": pl.read_ndjson,
    ".ndjson": pl.read_ndjson,
}


def load_matches(path: str | Path) -> pl.DataFrame:
    """Read a match export into a polars frame, choosing the reader by suffix.

    ``.json`` files may hold a list of records or an object with a
    ``matches`` list.

    Raises:
        ValueError: If the file type is not supported.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            payload = json.load(f)
        if isinstance(payload, dict):
            payload = payload.get("matches", [])
        if not isinstance(payload, list):
            raise ValueError(f"{path} does not contain a list of matches")
        if not payload:
            return pl.DataFrame()
        return pl.from_dicts(payload, infer_schema_length=None)

    reader = READERS.get(suffix)
    if reader is None:
        raise ValueError(
            f"Unsupported match file type {suffix!r}; expected one of "
            f"{sorted([*READERS, '.json'])}"
        )
    return reader(path)


def write_output(frame: pl.DataFrame, output: Optional[str], top: Optional[int]) -> None:
    """Write ``frame`` by output suffix, or print it when no output is given."""
    if top is not None:
        frame = frame.head(top)
    if not output:
        with pl.Config(tbl_rows=-1, tbl_cols=-1, tbl_width_chars=200):
            print(frame)
        return

    out = Path(output)
    out.parent.mkdir(parents=True, exist_ok=True)
    suffix = out.suffix.lower()
    if suffix == ".parquet":
        frame.write_parquet(out)
    elif suffix == ".json":
        frame.write_json(out)
    elif suffix in {".jsonl", ".ndjson"}:
        frame.write_ndjson(out)
    else:
        frame.write_csv(out)
    print(f"Wrote {frame.height} rows -> {out}")


def _selection(args: argparse.Namespace) -> SelectionConfig:
    return SelectionConfig(
        exclude_practice=args.exclude_practice,
        grouping_keys=args.tournament or None,
    )


def _performance_config(args: argparse.Namespace) -> PerformanceConfig:
    return PerformanceConfig(
        smoothing_k=args.smoothing_k,
        points_source=args.points_source,
    )


def _run_standings(args: argparse.Namespace, matches: pl.DataFrame) -> pl.DataFrame:
    engine = StandingsEngine(
        StandingsConfig(mode=StandingsMode.parse(args.mode)),
        selection=_selection(args),
    )
    if args.by_tournament:
        results = engine.compute_by_group(matches)
        frames = [
            result.standings.select(
                [pl.lit(key).alias("tournament"), pl.all()]
            )
            for key, result in results.items()
        ]
        return pl.concat(frames) if frames else pl.DataFrame()

    result = engine.compute(matches)
    print(
        f"Standings: participants={result.standings.height} "
        f"matches={result.matches_counted} unresolved={result.unresolved} "
        f"skipped={result.skipped}"
    )
    return result.standings


def _run_combos(args: argparse.Namespace, matches: pl.DataFrame) -> pl.DataFrame:
    aggregator = EntityPerformanceAggregator(
        _performance_config(args), selection=_selection(args)
    )
    result = aggregator.aggregate(matches, per_owner=args.per_owner)
    print(
        f"Combos: rows={result.entities.height} unresolved={result.unresolved} "
        f"skipped={result.skipped}"
    )
    return result.sorted_by(args.sort_by)


def _run_parts(args: argparse.Namespace, matches: pl.DataFrame) -> pl.DataFrame:
    if not args.parts_file:
        raise ValueError("--parts-file is required for the parts command")
    parser = ComboParser(PartsCatalog.from_json(args.parts_file))
    result = part_breakdown(
        matches,
        parser,
        parts=args.part or None,
        config=_performance_config(args),
        per_owner=args.per_owner,
        selection=_selection(args),
    )
    return result.sorted_by(args.sort_by)


COMMANDS = {
    "standings": _run_standings,
    "combos": _run_combos,
    "parts": _run_parts,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="leaderboards",
        description="Compute tournament standings and combo leaderboards from match exports",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "matches",
        help="Match export (.json, .jsonl/.ndjson, .csv or .parquet)",
    )
    practice = common.add_mutually_exclusive_group(required=True)
    practice.add_argument(
        "--exclude-practice",
        dest="exclude_practice",
        action="store_true",
        help="Leave out practice/exhibition matches",
    )
    practice.add_argument(
        "--include-practice",
        dest="exclude_practice",
        action="store_false",
        help="Count practice/exhibition matches",
    )
    common.add_argument(
        "--tournament",
        action="append",
        default=None,
        help="Only use matches from this tournament id (repeatable)",
    )
    common.add_argument(
        "-o",
        "--output",
        default=None,
        help="Write results here (.csv, .json, .jsonl or .parquet); prints a table otherwise",
    )
    common.add_argument(
        "--top", type=int, default=None, help="Only keep the first N rows"
    )

    performance = argparse.ArgumentParser(add_help=False)
    performance.add_argument(
        "--per-owner",
        action="store_true",
        help="One row per (combo, player) instead of per combo",
    )
    performance.add_argument(
        "--sort-by",
        default="composite_score",
        help="Column to rank by (default: composite_score)",
    )
    performance.add_argument(
        "--smoothing-k",
        type=float,
        default=PerformanceConfig.smoothing_k,
        help="Shrinkage constant K in n / (n + K) (default: 10)",
    )
    performance.add_argument(
        "--points-source",
        choices=["awarded", "score"],
        default=PerformanceConfig.points_source,
        help="Credit the match's awarded points or the side's own score on wins",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    standings = sub.add_parser(
        "standings", parents=[common], help="Swiss standings with tie-breaks"
    )
    standings.add_argument(
        "--mode",
        default=StandingsMode.PER_TOURNAMENT.value,
        help="per_tournament (1 point per win) or global (awarded points per win)",
    )
    standings.add_argument(
        "--by-tournament",
        action="store_true",
        help="Rank every tournament separately and stack the tables",
    )

    sub.add_parser(
        "combos",
        parents=[common, performance],
        help="Combo performance leaderboard",
    )

    parts = sub.add_parser(
        "parts", parents=[common, performance], help="Per-part performance"
    )
    parts.add_argument(
        "--parts-file",
        default=None,
        help="Parts database export (JSON) used to split combo names",
    )
    parts.add_argument(
        "--part",
        action="append",
        choices=list(PART_TYPES),
        default=None,
        help="Part type to report (repeatable; default: blade, ratchet, bit)",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        lvl = os.getenv("LEADERBOARDS_LOG_LEVEL", "WARNING")
        fmt = os.getenv("LEADERBOARDS_LOG_FORMAT", "simple")
        setup_logging(level=lvl, format_style=fmt)
    except AttributeError:
        setup_logging(level=logging.WARNING, format_style="simple")
    init_sentry(context="leaderboards_cli", release=__version__)

    try:
        matches = load_matches(args.matches)
        log_dataframe_stats(logger, matches, f"Loaded {args.matches}")
        frame = COMMANDS[args.command](args, matches)
    except (OSError, ValueError, pl.exceptions.PolarsError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1

    write_output(frame, args.output, args.top)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
