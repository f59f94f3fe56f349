"""Resolve loanbook sector classification codes to sectors."""
from __future__ import annotations

import logging
from typing import List, Tuple

import pandas as pd

from loanmatch.config import CLASSIFICATION_CODE, CLASSIFICATION_SYSTEM, as_bool
from loanmatch.errors import (
    SomeSectorClassificationUnknownWarning,
    UnknownSectorClassificationError,
    commas,
    warn,
)

logger = logging.getLogger(__name__)

SYSTEM_KEY = "_code_system"
CODE_KEY = "_code"


def normalize_code(value: object) -> str:
    if value is None or pd.isna(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip().casefold()


def _system_label(value: object) -> str:
    if value is None or pd.isna(value):
        return ""
    return str(value)


def prepare_classifications(classifications: pd.DataFrame) -> pd.DataFrame:
    lookup = pd.DataFrame(
        {
            SYSTEM_KEY: classifications["code_system"].map(_system_label),
            CODE_KEY: classifications["code"].map(normalize_code),
            "sector": classifications["sector"].astype(str).str.lower(),
            "borderline": as_bool(classifications["borderline"]),
        }
    )
    return lookup.drop_duplicates(subset=[SYSTEM_KEY, CODE_KEY], keep="first")


def resolve_sectors(loanbook: pd.DataFrame, classifications: pd.DataFrame) -> pd.DataFrame:
    """Add ``sector`` and ``borderline`` to each loanbook row.

    The classification system must match exactly; the code matches ignoring
    case and surrounding whitespace. Rows whose pair is unknown are dropped
    with a warning, and if no row resolves an error is raised.
    """
    if loanbook.empty:
        return loanbook.assign(
            sector=pd.Series(dtype=object), borderline=pd.Series(dtype=bool)
        )
    keys = pd.DataFrame(
        {
            SYSTEM_KEY: loanbook[CLASSIFICATION_SYSTEM].map(_system_label).to_numpy(),
            CODE_KEY: loanbook[CLASSIFICATION_CODE].map(normalize_code).to_numpy(),
        }
    )
    lookup = prepare_classifications(classifications)
    resolved = keys.merge(lookup, how="left", on=[SYSTEM_KEY, CODE_KEY])
    known = resolved["sector"].notna().to_numpy()

    if not known.any():
        raise UnknownSectorClassificationError(
            "No `loanbook` row has a known sector classification. "
            f"Unknown (system, code): {_describe_unknown(loanbook, known)}"
        )
    if not known.all():
        warn(
            "Some `loanbook` rows have an unknown sector classification and are "
            f"excluded from matching. Unknown (system, code): {_describe_unknown(loanbook, known)}",
            SomeSectorClassificationUnknownWarning,
        )

    out = loanbook.loc[known].copy()
    out["sector"] = resolved.loc[known, "sector"].to_numpy()
    out["borderline"] = resolved.loc[known, "borderline"].astype(bool).to_numpy()
    logger.debug("Resolved sectors for %d of %d loanbook rows", known.sum(), len(known))
    return out


def _describe_unknown(loanbook: pd.DataFrame, known) -> str:
    pairs: List[Tuple[str, str]] = []
    subset = loanbook.loc[~known, [CLASSIFICATION_SYSTEM, CLASSIFICATION_CODE]]
    for system, code in subset.itertuples(index=False, name=None):
        pair = (_system_label(system), "" if pd.isna(code) else str(code))
        if pair not in pairs:
            pairs.append(pair)
    return commas(f"({system}, {code})" for system, code in pairs)
