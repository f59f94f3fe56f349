"""Command line interface: ``loanmatch match`` and ``loanmatch prioritize``."""
from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from collections import Counter
from pathlib import Path
from typing import Dict, Optional, Sequence

import pandas as pd

from loanmatch.config import DEFAULT_METHOD, DEFAULT_MIN_SCORE, MatchConfig, load_sector_classifications
from loanmatch.data_loader import load_table
from loanmatch.errors import MatchingError
from loanmatch.matching import match_name
from loanmatch.prioritize import prioritize
from loanmatch.similarity import METHODS

logger = logging.getLogger("loanmatch")


def parse_param(text: str) -> tuple:
    """Parse ``key=value``; numbers become numbers, ``a,b,c`` becomes a tuple."""
    if "=" not in text:
        raise argparse.ArgumentTypeError(f"Expected key=value, got {text!r}")
    key, raw = text.split("=", 1)
    values = [_number(part) for part in raw.split(",")]
    return key.strip(), values[0] if len(values) == 1 else tuple(values)


def _number(raw: str) -> object:
    raw = raw.strip()
    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            continue
    return raw


def parse_join_id(text: Optional[str]) -> Optional[object]:
    if not text:
        return None
    if "=" in text:
        loanbook_column, abcd_column = text.split("=", 1)
        return {loanbook_column.strip(): abcd_column.strip()}
    return text.strip()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Match loanbook borrowers to ABCD companies")
    parser.add_argument("--log", required=False, help="Log file path (default: stderr)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug messages")
    commands = parser.add_subparsers(dest="command", required=True)

    match = commands.add_parser("match", help="Match loanbook names to ABCD names")
    match.add_argument("--loanbook", required=True, help="Path to loanbook CSV/Parquet")
    match.add_argument("--abcd", required=True, help="Path to ABCD CSV/Parquet")
    match.add_argument("--out", required=True, help="Output CSV path")
    match.add_argument("--overwrite", help="Path to overwrite CSV/Parquet")
    match.add_argument("--by-sector", dest="by_sector", action=argparse.BooleanOptionalAction, default=True)
    match.add_argument("--min-score", dest="min_score", type=float, default=DEFAULT_MIN_SCORE)
    match.add_argument("--method", choices=METHODS, default=DEFAULT_METHOD)
    match.add_argument(
        "--param",
        dest="params",
        action="append",
        type=parse_param,
        default=[],
        help="Similarity parameter as key=value, e.g. p=0.1 or q=2; repeatable",
    )
    match.add_argument("--join-id", dest="join_id", help="Shared id column, or loanbook_col=abcd_col")
    match.add_argument("--sector-classifications", dest="sector_classifications", help="Custom lookup CSV")
    match.add_argument("--allow-reserved-columns", dest="allow_reserved_columns", action="store_true")

    prio = commands.add_parser("prioritize", help="Keep one perfect match per loan")
    prio.add_argument("--matched", required=True, help="Validated output of `match`")
    prio.add_argument("--out", required=True, help="Output CSV path")
    prio.add_argument("--priority", help="Comma separated levels, highest priority first")
    prio.add_argument("--reverse", action="store_true", help="Reverse the default priority")
    return parser.parse_args(argv)


def validate_args(args: argparse.Namespace) -> None:
    if args.command == "prioritize" and args.priority and args.reverse:
        raise MatchingError("Use either --priority or --reverse, not both")
    if args.command == "match" and not 0 <= args.min_score <= 1:
        raise MatchingError(f"--min-score must be in [0, 1], not {args.min_score}")


def setup_logger(log_path: Optional[Path], verbose: bool = False) -> logging.Logger:
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_path, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.handlers = [handler]
    return logger


def report_metrics(matched: pd.DataFrame, durations: Dict[str, float]) -> None:
    for column in ("level", "source", "sector_abcd"):
        if column in matched.columns:
            counts = Counter(matched[column].astype(str))
            logger.info("Rows by %s: %s", column, json.dumps(dict(counts), ensure_ascii=False))
    if "score" in matched.columns and len(matched):
        logger.info("Perfect matches: %d of %d", int((matched["score"] == 1).sum()), len(matched))
    for name, duration in durations.items():
        logger.info("Duration %s: %.3fs", name, duration)


def _priority(args: argparse.Namespace) -> Optional[object]:
    if args.reverse:
        return lambda levels: list(reversed(levels))
    if args.priority:
        return [level.strip() for level in args.priority.split(",") if level.strip()]
    return None


def run_match(args: argparse.Namespace) -> pd.DataFrame:
    classifications = None
    if args.sector_classifications:
        classifications = load_sector_classifications(args.sector_classifications)
    config = MatchConfig(
        allow_reserved_columns=args.allow_reserved_columns,
        sector_classifications=classifications,
    )
    loanbook = load_table(args.loanbook)
    abcd = load_table(args.abcd)
    overwrite = load_table(args.overwrite) if args.overwrite else None
    params = dict(args.params)
    return match_name(
        loanbook,
        abcd,
        by_sector=args.by_sector,
        min_score=args.min_score,
        method=args.method,
        overwrite=overwrite,
        join_id=parse_join_id(args.join_id),
        config=config,
        **params,
    )


def run_prioritize(args: argparse.Namespace) -> pd.DataFrame:
    return prioritize(load_table(args.matched), priority=_priority(args))


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    validate_args(args)
    setup_logger(Path(args.log) if args.log else None, args.verbose)
    logger.info("Starting %s with parameters: %s", args.command, json.dumps(vars(args), default=str))
    start_time = time.perf_counter()
    result = run_match(args) if args.command == "match" else run_prioritize(args)
    run_duration = time.perf_counter() - start_time

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    save_start = time.perf_counter()
    result.to_csv(out_path, index=False)
    durations = {
        args.command: run_duration,
        "save": time.perf_counter() - save_start,
        "total": time.perf_counter() - start_time,
    }
    report_metrics(result, durations)
    logger.info("Wrote %d row(s) to %s", len(result), out_path)


if __name__ == "__main__":
    main(sys.argv[1:])
