"""Pick one perfect match per loan by level priority."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union

import pandas as pd
import regex

from loanmatch.config import ID_LOAN, PRIORITIZE_CRUCIAL
from loanmatch.errors import UnknownPriorityLevelWarning, commas, warn
from loanmatch.hierarchy import natural_key
from loanmatch.validation import check_crucial_columns, check_duplicated_perfect_matches

logger = logging.getLogger(__name__)

LEVEL_PATTERNS = [regex.compile("direct"), regex.compile("intermediate"), regex.compile("ultimate")]
GROUP_KEYS = [ID_LOAN, "sector", "sector_abcd"]


def prioritize_level(data: pd.DataFrame) -> List[str]:
    """Return the default level priority of ``data``.

    Levels mentioning "direct" come first, then "intermediate" (by numeric
    suffix) and then "ultimate". Levels matching none of these are left out.
    """
    levels = sorted((str(level) for level in pd.unique(data["level"].dropna())), key=natural_key)
    ordered: List[str] = []
    for pattern in LEVEL_PATTERNS:
        ordered.extend(level for level in levels if pattern.search(level) and level not in ordered)
    return ordered


@dataclass(frozen=True)
class Priority:
    """How to order levels: the default, an explicit list, or a transform of the default."""

    kind: str = "default"
    levels: Optional[Sequence[str]] = None
    function: Optional[Callable[[List[str]], Sequence[str]]] = None

    @classmethod
    def default(cls) -> "Priority":
        return cls()

    @classmethod
    def explicit(cls, levels: Sequence[str]) -> "Priority":
        return cls(kind="explicit", levels=tuple(levels))

    @classmethod
    def transform(cls, function: Callable[[List[str]], Sequence[str]]) -> "Priority":
        return cls(kind="transform", function=function)

    @classmethod
    def coerce(cls, value: Union[None, str, Sequence[str], Callable, "Priority"]) -> "Priority":
        if value is None:
            return cls.default()
        if isinstance(value, Priority):
            return value
        if callable(value):
            return cls.transform(value)
        if isinstance(value, str):
            return cls.explicit([value])
        return cls.explicit(value)

    def resolve(self, data: pd.DataFrame) -> List[str]:
        default = prioritize_level(data)
        if self.kind == "explicit":
            return [str(level) for level in self.levels]
        if self.kind == "transform":
            return [str(level) for level in self.function(list(default))]
        return default


def _set_priority(data: pd.DataFrame, priority: Priority) -> List[str]:
    order = priority.resolve(data)
    known = sorted(str(level) for level in pd.unique(data["level"].dropna()))
    unknown = [level for level in order if level not in known]
    if unknown:
        warn(
            f"Ignoring `priority` levels not found in data: {commas(unknown)}. "
            f"Did you mean to use one of: {commas(known)}?",
            UnknownPriorityLevelWarning,
        )
    return order


def prioritize(data: pd.DataFrame, priority=None) -> pd.DataFrame:
    """Keep one perfect match per loan, at its highest-priority level.

    Parameters
    ----------
    data:
        Output of :func:`loanmatch.matching.match_name`, possibly with
        ``score`` edited by hand to mark validated matches.
    priority:
        ``None`` for :func:`prioritize_level`, a list of levels, a function
        applied to the default order (e.g. ``lambda levels: levels[::-1]``),
        or a :class:`Priority`.

    Returns
    -------
    pandas.DataFrame
        Rows with ``score`` 1, one per ``id_loan``, ``sector`` and
        ``sector_abcd``. Every column of ``data`` is kept.
    """
    if data.empty:
        return data
    check_crucial_columns(data, PRIORITIZE_CRUCIAL, what="data")
    check_duplicated_perfect_matches(data)
    order = _set_priority(data, Priority.coerce(priority))

    perfect = data.loc[data["score"] == 1]
    ranks = {level: rank for rank, level in enumerate(order)}
    rest = sorted(set(perfect["level"].astype(str)) - set(ranks))
    ranks.update({level: len(order) + i for i, level in enumerate(rest)})

    ranked = perfect.assign(_rank=perfect["level"].astype(str).map(ranks))
    ranked = ranked.sort_values("_rank", kind="mergesort")
    out = ranked.groupby(GROUP_KEYS, sort=False, dropna=False).head(1)
    logger.info("Prioritized %d perfect match(es) into %d row(s)", len(perfect), len(out))
    return out.drop(columns="_rank").reset_index(drop=True)
