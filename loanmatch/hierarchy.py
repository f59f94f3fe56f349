"""Expand each loan's ownership hierarchy into one candidate per level."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

import pandas as pd
import regex

from loanmatch.alias import to_alias_series
from loanmatch.config import (
    DIRECT_LOANTAKER,
    ID_LOAN,
    INTERMEDIATE_PARENT,
    LEVEL_PREFIXES,
    ULTIMATE_PARENT,
)
from loanmatch.errors import MissingColumnsError, NameWithoutIdError

logger = logging.getLogger(__name__)

LEVEL_COLUMN_PATTERN = regex.compile(
    rf"^(?P<kind>id|name)_(?P<tag>{DIRECT_LOANTAKER}|{ULTIMATE_PARENT}|{INTERMEDIATE_PARENT}\w*)$"
)
DIGITS_PATTERN = regex.compile(r"(\d+)")

CANDIDATE_COLUMNS = [
    "rowid",
    ID_LOAN,
    "level",
    "id_match",
    "name",
    "sector",
    "borderline",
    "source",
    "alias",
]


@dataclass(frozen=True)
class LevelSpec:
    tag: str
    id_column: str
    name_column: str
    id_prefix: str


def natural_key(text: str) -> list:
    return [int(part) if part.isdigit() else part for part in DIGITS_PATTERN.split(text)]


def level_rank(tag: str) -> int:
    if DIRECT_LOANTAKER in tag:
        return 0
    if INTERMEDIATE_PARENT in tag:
        return 1
    if ULTIMATE_PARENT in tag:
        return 2
    return 3


def level_sort_key(tag: str) -> tuple:
    return (level_rank(tag), natural_key(tag))


def _prefix_for(tag: str) -> str:
    if tag.startswith(INTERMEDIATE_PARENT):
        return LEVEL_PREFIXES[INTERMEDIATE_PARENT]
    return LEVEL_PREFIXES[tag]


def level_specs(columns: Sequence[str]) -> List[LevelSpec]:
    """Describe the hierarchy levels present in a loanbook schema.

    Each level is an ``id_<tag>`` / ``name_<tag>`` column pair. The result is
    ordered direct loantaker first, intermediate parents by suffix, ultimate
    parent last.
    """
    ids = {}
    names = {}
    for column in columns:
        found = LEVEL_COLUMN_PATTERN.match(str(column))
        if not found:
            continue
        target = ids if found.group("kind") == "id" else names
        target[found.group("tag")] = str(column)

    names_without_id = [names[tag] for tag in names if tag not in ids]
    if names_without_id:
        raise NameWithoutIdError(names_without_id)
    ids_without_name = [f"name_{tag}" for tag in ids if tag not in names]
    if ids_without_name:
        raise MissingColumnsError(ids_without_name, what="loanbook")

    specs = [
        LevelSpec(tag=tag, id_column=ids[tag], name_column=names[tag], id_prefix=_prefix_for(tag))
        for tag in names
    ]
    return sorted(specs, key=lambda spec: level_sort_key(spec.tag))


def expand_hierarchy(loanbook: pd.DataFrame, specs: Sequence[LevelSpec]) -> pd.DataFrame:
    """Return one candidate row per (loan, level) with both id and name present.

    ``loanbook`` must already carry ``rowid``, ``sector`` and ``borderline``.
    """
    frames = []
    for order, spec in enumerate(specs):
        present = loanbook[spec.id_column].notna() & loanbook[spec.name_column].notna()
        rows = loanbook.loc[present]
        if rows.empty:
            continue
        frames.append(
            pd.DataFrame(
                {
                    "rowid": rows["rowid"].to_numpy(),
                    ID_LOAN: rows[ID_LOAN].to_numpy(),
                    "level": spec.tag,
                    "id_match": [f"{spec.id_prefix}{rowid}" for rowid in rows["rowid"]],
                    "name": rows[spec.name_column].astype(str).to_numpy(),
                    "sector": rows["sector"].to_numpy(),
                    "borderline": rows["borderline"].astype(bool).to_numpy(),
                    "source": "loanbook",
                    "_order": order,
                }
            )
        )
    if not frames:
        empty = pd.DataFrame({column: pd.Series(dtype=object) for column in CANDIDATE_COLUMNS})
        return empty.astype({"rowid": "int64", "borderline": bool})

    candidates = pd.concat(frames, ignore_index=True)
    candidates = candidates.sort_values(["rowid", "_order"], kind="mergesort")
    candidates = candidates.drop(columns="_order").reset_index(drop=True)
    candidates["alias"] = to_alias_series(candidates["name"])
    logger.debug("Expanded %d loans into %d candidates", len(loanbook), len(candidates))
    return candidates[CANDIDATE_COLUMNS]
