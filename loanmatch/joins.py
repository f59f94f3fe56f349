"""Join loanbook candidates to ABCD companies by identifier and by name."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd
import regex

from loanmatch.alias import to_alias_series
from loanmatch.config import DIRECT_LOANTAKER, INTERMEDIATE_PARENT, ULTIMATE_PARENT
from loanmatch.errors import MatchingError, MissingColumnsError
from loanmatch.similarity import similarity_matrix

logger = logging.getLogger(__name__)

LEVEL_SUFFIX_PATTERN = regex.compile(
    rf"_(?P<tag>{DIRECT_LOANTAKER}|{ULTIMATE_PARENT}|{INTERMEDIATE_PARENT}\w*)$"
)
ABCD_COLUMNS = ["abcd_order", "name_abcd", "sector_abcd", "alias_abcd"]
JOIN_KEY = "_join_key"


@dataclass(frozen=True)
class JoinId:
    """Identifier shared by the loanbook and ABCD, possibly under two names.

    Matches found through it are attached to ``level``: the level the
    loanbook column name ends with, or the direct loantaker.
    """

    loanbook_column: str
    abcd_column: str
    level: str = DIRECT_LOANTAKER

    @classmethod
    def coerce(cls, value: object) -> Optional["JoinId"]:
        if value is None or isinstance(value, JoinId):
            return value
        if isinstance(value, str):
            pair: Tuple[str, str] = (value, value)
        elif isinstance(value, Mapping) and len(value) == 1:
            pair = next(iter(value.items()))
        elif isinstance(value, (tuple, list)) and len(value) == 2:
            pair = (value[0], value[1])
        else:
            raise MatchingError(
                "`join_id` must be a column name, a one-item mapping "
                f"{{loanbook_column: abcd_column}} or a pair of column names, not {value!r}"
            )
        loanbook_column, abcd_column = str(pair[0]), str(pair[1])
        found = LEVEL_SUFFIX_PATTERN.search(loanbook_column)
        level = found.group("tag") if found else DIRECT_LOANTAKER
        return cls(loanbook_column=loanbook_column, abcd_column=abcd_column, level=level)

    def check(self, loanbook: pd.DataFrame, abcd: pd.DataFrame) -> "JoinId":
        if self.loanbook_column not in loanbook.columns:
            raise MissingColumnsError([self.loanbook_column], what="loanbook")
        if self.abcd_column not in abcd.columns:
            raise MissingColumnsError([self.abcd_column], what="abcd")
        return self


def prepare_abcd(abcd: pd.DataFrame, join_column: Optional[str] = None) -> pd.DataFrame:
    """Select, normalize and deduplicate the ABCD columns used for matching."""
    columns = ["name_company", "sector"]
    if join_column is not None and join_column not in columns:
        columns.append(join_column)
    out = abcd[columns].copy()
    out["sector"] = out["sector"].astype(str).str.lower()
    out = out.drop_duplicates().reset_index(drop=True)
    out = out.rename(columns={"name_company": "name_abcd", "sector": "sector_abcd"})
    if join_column == "name_company":
        out[join_column] = out["name_abcd"]
    elif join_column == "sector":
        out[join_column] = out["sector_abcd"]
    out["alias_abcd"] = to_alias_series(out["name_abcd"])
    out["abcd_order"] = np.arange(len(out))
    return out


def _key(value: object) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    # A column with missing values reads 123 as 123.0
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _join_key(series: pd.Series) -> pd.Series:
    return series.map(_key)


def join_by_id(
    candidates: pd.DataFrame,
    loan_keys: pd.DataFrame,
    abcd: pd.DataFrame,
    join_id: JoinId,
    by_sector: bool = True,
) -> pd.DataFrame:
    """Match candidates at ``join_id.level`` on equal identifiers.

    ``loan_keys`` holds ``rowid`` and the loanbook identifier column. Missing
    identifiers on either side never match. Matches score 1.
    """
    at_level = candidates.loc[candidates["level"] == join_id.level]
    keys = pd.DataFrame(
        {"rowid": loan_keys["rowid"].to_numpy(), JOIN_KEY: _join_key(loan_keys[join_id.loanbook_column]).to_numpy()}
    )
    at_level = at_level.merge(keys.dropna(subset=[JOIN_KEY]), on="rowid", how="inner")
    targets = abcd[ABCD_COLUMNS].assign(**{JOIN_KEY: _join_key(abcd[join_id.abcd_column])})
    targets = targets.dropna(subset=[JOIN_KEY])
    matched = at_level.merge(targets, on=JOIN_KEY, how="inner").drop(columns=JOIN_KEY)
    if by_sector:
        matched = matched.loc[matched["sector"] == matched["sector_abcd"]]
    matched = matched.assign(score=1.0)
    logger.info("Matched %d candidate(s) by `%s`", len(matched), join_id.loanbook_column)
    return matched.reset_index(drop=True)


def _score_pairs(
    candidates: pd.DataFrame,
    abcd: pd.DataFrame,
    min_score: float,
    method: str,
    params: dict,
) -> pd.DataFrame:
    queries = pd.unique(candidates["alias"])
    choices = pd.unique(abcd["alias_abcd"])
    scores = similarity_matrix(list(queries), list(choices), method, **params)
    rows, cols = np.nonzero(scores >= min_score)
    return pd.DataFrame(
        {
            "alias": queries[rows],
            "alias_abcd": choices[cols],
            "score": scores[rows, cols],
        }
    )


def join_by_name(
    candidates: pd.DataFrame,
    abcd: pd.DataFrame,
    by_sector: bool = True,
    min_score: float = 0.8,
    method: str = "jw",
    **params: object,
) -> pd.DataFrame:
    """Score candidate aliases against ABCD aliases and keep the good pairs.

    With ``by_sector`` only ABCD rows of the candidate's sector are scored;
    otherwise every ABCD row is, so one candidate may match across sectors.
    If a (loan, level) has any perfect match, its imperfect matches are dropped.
    """
    pool = candidates.loc[candidates["alias"] != ""]
    targets = abcd.loc[abcd["alias_abcd"] != "", ABCD_COLUMNS]

    pairs: List[pd.DataFrame] = []
    if by_sector:
        for sector, group in pool.groupby("sector", sort=False):
            in_sector = targets.loc[targets["sector_abcd"] == sector]
            if in_sector.empty:
                continue
            scored = _score_pairs(group, in_sector, min_score, method, params)
            pairs.append(scored.assign(sector=sector))
        on = ["alias", "sector"]
    else:
        if not pool.empty and not targets.empty:
            pairs.append(_score_pairs(pool, targets, min_score, method, params))
        on = ["alias"]

    if not pairs:
        return _empty_like(candidates)
    scored = pd.concat(pairs, ignore_index=True)
    matched = pool.merge(scored, on=on, how="inner")
    if by_sector:
        matched = matched.merge(
            targets,
            left_on=["alias_abcd", "sector"],
            right_on=["alias_abcd", "sector_abcd"],
            how="inner",
        )
    else:
        matched = matched.merge(targets, on="alias_abcd", how="inner")
    logger.debug("Fuzzy join kept %d pair(s) with score >= %s", len(matched), min_score)
    return prefer_perfect_matches(matched)


def prefer_perfect_matches(matched: pd.DataFrame) -> pd.DataFrame:
    if matched.empty:
        return matched.reset_index(drop=True)
    is_perfect = matched["score"] == 1
    has_perfect = is_perfect.groupby([matched["rowid"], matched["level"]]).transform("any")
    return matched.loc[~has_perfect | is_perfect].reset_index(drop=True)


def prefer_id_matches(by_id: pd.DataFrame, by_name: pd.DataFrame) -> pd.DataFrame:
    """Combine both joins; an id match replaces any name match of its (loan, level)."""
    if by_id.empty:
        return by_name
    id_keys = pd.MultiIndex.from_frame(by_id[["rowid", "level"]])
    name_keys = pd.MultiIndex.from_frame(by_name[["rowid", "level"]])
    kept = by_name.loc[~name_keys.isin(id_keys)]
    columns = list(by_name.columns) if not by_name.empty else list(by_id.columns)
    return pd.concat([by_id[columns], kept[columns]], ignore_index=True)


def _empty_like(candidates: pd.DataFrame) -> pd.DataFrame:
    columns = list(candidates.columns) + ["alias_abcd", "score", "abcd_order", "name_abcd", "sector_abcd"]
    out = candidates.iloc[0:0].copy()
    for column in columns[len(candidates.columns):]:
        out[column] = pd.Series(dtype=np.float64 if column == "score" else object)
    return out
