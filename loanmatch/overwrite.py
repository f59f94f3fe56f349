"""Manual corrections of loanbook names and sectors."""
from __future__ import annotations

import logging
from typing import Optional

import pandas as pd

from loanmatch.alias import to_alias_series
from loanmatch.config import OVERWRITE_CRUCIAL
from loanmatch.errors import OverwriteWarning, commas, warn

logger = logging.getLogger(__name__)

OVERWRITTEN = "_overwritten"
KEY = ["level", "id_match"]


def prepare_overwrite(overwrite: pd.DataFrame) -> pd.DataFrame:
    rules = overwrite[OVERWRITE_CRUCIAL].copy()
    rules["level"] = rules["level"].astype(str)
    rules["id_match"] = rules["id_match"].astype(str)
    rules["name"] = rules["name"].astype(str)
    rules["sector"] = rules["sector"].astype(str).str.lower()
    rules["source"] = rules["source"].astype(str)
    return rules.drop_duplicates(subset=KEY, keep="last")


def apply_overwrite_to_candidates(
    candidates: pd.DataFrame, overwrite: Optional[pd.DataFrame]
) -> pd.DataFrame:
    """Replace name, sector and source of candidates keyed by (level, id_match).

    The replaced names are the ones scored against ABCD. Replacing a value
    that came from another source warns, but the overwrite is applied anyway.
    """
    out = candidates.copy()
    out[OVERWRITTEN] = False
    if overwrite is None or overwrite.empty or out.empty:
        return out

    rules = prepare_overwrite(overwrite)
    merged = out[KEY].merge(rules, on=KEY, how="left")
    hit = merged["name"].notna().to_numpy()
    if not hit.any():
        logger.info("No overwrite rule matched any (level, id_match)")
        return out

    new_name = merged.loc[hit, "name"].to_numpy()
    new_sector = merged.loc[hit, "sector"].to_numpy()
    new_source = merged.loc[hit, "source"].to_numpy()
    current = out.loc[hit]
    conflicts = (current["source"].to_numpy() != new_source) & (
        (current["name"].to_numpy() != new_name) | (current["sector"].to_numpy() != new_sector)
    )
    if conflicts.any():
        keys = current.loc[conflicts, KEY].itertuples(index=False, name=None)
        described = [f"({level}, {id_match})" for level, id_match in keys]
        warn(
            f"Overwriting name and/or sector of (level, id_match): {commas(described)}",
            OverwriteWarning,
        )

    out.loc[hit, "name"] = new_name
    out.loc[hit, "sector"] = new_sector
    out.loc[hit, "source"] = new_source
    out.loc[hit, "alias"] = to_alias_series(pd.Series(new_name, dtype=object)).to_numpy()
    out.loc[hit, OVERWRITTEN] = True
    logger.info("Applied %d overwrite rule(s)", int(hit.sum()))
    return out


def inject_overwrite(matched: pd.DataFrame) -> pd.DataFrame:
    """Keep the best ABCD match of each overwritten (loan, level) at score 1."""
    if matched.empty or OVERWRITTEN not in matched.columns or not matched[OVERWRITTEN].any():
        return matched
    flagged = matched[OVERWRITTEN].astype(bool)
    best = matched.groupby(["rowid", "level"])["score"].transform("max")
    keep = ~flagged | (matched["score"] == best)
    out = matched.loc[keep].copy()
    out.loc[out[OVERWRITTEN].astype(bool), "score"] = 1.0
    return out.reset_index(drop=True)


def lost_overwrites(candidates: pd.DataFrame, matched: pd.DataFrame) -> pd.DataFrame:
    """Overwritten candidates whose new name matched no ABCD row."""
    flagged = candidates.loc[candidates[OVERWRITTEN].astype(bool)]
    if flagged.empty:
        return flagged
    found = pd.MultiIndex.from_frame(matched[["rowid", "level"]])
    keys = pd.MultiIndex.from_frame(flagged[["rowid", "level"]])
    return flagged.loc[~keys.isin(found)]


def reattach_overwritten(
    matched: pd.DataFrame, before: pd.DataFrame, lost: pd.DataFrame
) -> pd.DataFrame:
    """Add the matches ``lost`` candidates had before their overwrite.

    ``before`` holds those matches. They take the overwrite's name, sector
    and source, and are flagged so :func:`inject_overwrite` scores them 1.
    """
    if before.empty:
        logger.info("No match to carry %d overwrite rule(s) onto", len(lost))
        return matched
    replaced = ["name", "sector", "source", "alias"]
    restored = before.drop(columns=replaced + [OVERWRITTEN]).merge(
        lost[["rowid", "level"] + replaced], on=["rowid", "level"], how="inner"
    )
    restored[OVERWRITTEN] = True
    logger.info("Carried overwrite rules onto %d earlier match(es)", len(restored))
    frames = [frame for frame in (matched, restored[list(matched.columns)]) if not frame.empty]
    return pd.concat(frames, ignore_index=True)
