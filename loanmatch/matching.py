"""Match a loanbook to ABCD companies at every level of the ownership hierarchy."""
from __future__ import annotations

import logging
import time
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from loanmatch.config import (
    CALLER_SECTOR_COLUMNS,
    DEFAULT_METHOD,
    DEFAULT_MIN_SCORE,
    ID_LOAN,
    OUTPUT_COLUMNS,
    MatchConfig,
    as_bool,
)
from loanmatch.errors import NoMatchWarning, warn
from loanmatch.hierarchy import expand_hierarchy, level_sort_key, level_specs
from loanmatch.joins import JoinId, join_by_id, join_by_name, prefer_id_matches, prepare_abcd
from loanmatch.overwrite import (
    apply_overwrite_to_candidates,
    inject_overwrite,
    lost_overwrites,
    reattach_overwritten,
)
from loanmatch.sectors import resolve_sectors
from loanmatch.similarity import check_method
from loanmatch.validation import validate_inputs

logger = logging.getLogger(__name__)

# Dtype pandas infers for text: object, or the string dtype where that is the default.
TEXT_DTYPE = pd.Series([""]).dtype

OUTPUT_DTYPES = {
    "id_match": TEXT_DTYPE,
    "level": TEXT_DTYPE,
    "sector": TEXT_DTYPE,
    "sector_abcd": TEXT_DTYPE,
    "name": TEXT_DTYPE,
    "name_abcd": TEXT_DTYPE,
    "score": np.float64,
    "source": TEXT_DTYPE,
    "borderline": bool,
}


def match_name(
    loanbook: pd.DataFrame,
    abcd: pd.DataFrame,
    by_sector: bool = True,
    min_score: float = DEFAULT_MIN_SCORE,
    method: str = DEFAULT_METHOD,
    overwrite: Optional[pd.DataFrame] = None,
    join_id: object = None,
    config: Optional[MatchConfig] = None,
    **method_params: object,
) -> pd.DataFrame:
    """Match loanbook names at each hierarchy level to ABCD company names.

    Parameters
    ----------
    loanbook, abcd:
        Input tables; neither is modified.
    by_sector:
        Only score ABCD companies of the loan's own sector.
    min_score:
        Drop matches scoring below this value, in ``[0, 1]``.
    method, method_params:
        Similarity method and its parameters, e.g. ``method="jw", p=0.1`` or
        ``method="qgram", q=2``. See :mod:`loanmatch.similarity`.
    overwrite:
        Optional manual corrections with columns
        ``level, id_match, name, sector, source``.
    join_id:
        Optional identifier matched exactly before any fuzzy scoring: a column
        name shared by both tables, or ``{loanbook_column: abcd_column}``.
    config:
        :class:`~loanmatch.config.MatchConfig`; defaults apply when ``None``.

    Returns
    -------
    pandas.DataFrame
        All loanbook columns followed by ``id_match, level, sector,
        sector_abcd, name, name_abcd, score, source, borderline``. When nothing
        matches a :class:`~loanmatch.errors.NoMatchWarning` is emitted and an
        empty frame with the same columns is returned.
    """
    config = config or MatchConfig()
    if not 0 <= min_score <= 1:
        raise ValueError(f"`min_score` must be in [0, 1], not {min_score!r}")
    check_method(method, **method_params)
    validate_inputs(loanbook, abcd, overwrite, config)
    join = JoinId.coerce(join_id)
    if join is not None:
        join.check(loanbook, abcd)

    start_time = time.perf_counter()
    logger.info(
        "Matching %d loans against %d abcd rows (method=%s, by_sector=%s, min_score=%s)",
        len(loanbook),
        len(abcd),
        method,
        by_sector,
        min_score,
    )
    specs = level_specs(loanbook.columns)
    prepared = loanbook.reset_index(drop=True)
    prepared.insert(0, "rowid", np.arange(1, len(prepared) + 1))
    resolved = _add_sector(prepared, config)

    original = apply_overwrite_to_candidates(expand_hierarchy(resolved, specs), None)
    candidates = apply_overwrite_to_candidates(original, overwrite)
    abcd_ready = prepare_abcd(abcd, join.abcd_column if join is not None else None)
    loan_keys = prepared[["rowid", join.loanbook_column]] if join is not None else None

    def join_candidates(pool: pd.DataFrame) -> pd.DataFrame:
        found = join_by_name(pool, abcd_ready, by_sector, min_score, method, **method_params)
        if join is not None:
            found = prefer_id_matches(join_by_id(pool, loan_keys, abcd_ready, join, by_sector), found)
        return found

    matched = join_candidates(candidates)
    lost = lost_overwrites(candidates, matched)
    if not lost.empty:
        before = original.merge(lost[["rowid", "level"]], on=["rowid", "level"], how="inner")
        matched = reattach_overwritten(matched, join_candidates(before), lost)
    matched = inject_overwrite(matched)

    if matched.empty:
        warn("Found no match. Try a lower `min_score` or `by_sector=False`", NoMatchWarning)
        return empty_output(loanbook)
    out = assemble_output(prepared, matched, loanbook.columns)
    logger.info(
        "Found %d match(es) for %d loan(s) in %.3fs",
        len(out),
        out[ID_LOAN].nunique(),
        time.perf_counter() - start_time,
    )
    return out


def _add_sector(prepared: pd.DataFrame, config: MatchConfig) -> pd.DataFrame:
    if config.allow_reserved_columns and all(col in prepared.columns for col in CALLER_SECTOR_COLUMNS):
        logger.info("Using `sector` and `borderline` from the loanbook")
        out = prepared.copy()
        out["sector"] = out["sector"].map(lambda value: value if pd.isna(value) else str(value).lower())
        out["borderline"] = as_bool(out["borderline"])
        return out
    return resolve_sectors(prepared, config.classifications())


def loanbook_output_columns(columns: Sequence[str]) -> List[str]:
    return [col for col in columns if col not in OUTPUT_COLUMNS]


def empty_output(loanbook: pd.DataFrame) -> pd.DataFrame:
    """Zero-row result with the columns and loanbook dtypes of a real one."""
    out = loanbook.iloc[0:0][loanbook_output_columns(loanbook.columns)].copy()
    for column in OUTPUT_COLUMNS:
        out[column] = pd.Series(dtype=OUTPUT_DTYPES[column])
    return out.reset_index(drop=True)


def assemble_output(prepared: pd.DataFrame, matched: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    lbk_columns = loanbook_output_columns(columns)
    levels = sorted(matched["level"].unique(), key=level_sort_key)
    ranks = {level: rank for rank, level in enumerate(levels)}
    matched = matched.assign(_level_rank=matched["level"].map(ranks))
    matched = matched.sort_values(
        ["rowid", "_level_rank", "score", "abcd_order"],
        ascending=[True, True, False, True],
        kind="mergesort",
    )
    added = matched[["rowid"] + OUTPUT_COLUMNS].astype(OUTPUT_DTYPES)
    out = added.merge(prepared[["rowid"] + lbk_columns], on="rowid", how="left", sort=False)
    return out[lbk_columns + OUTPUT_COLUMNS].reset_index(drop=True)
