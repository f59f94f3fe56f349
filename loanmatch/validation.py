"""Checks that abort matching before any output is produced."""
from __future__ import annotations

import logging
from typing import Optional, Sequence

import pandas as pd

from loanmatch.config import (
    ABCD_CRUCIAL,
    CALLER_SECTOR_COLUMNS,
    ID_LOAN,
    LOANBOOK_CRUCIAL,
    OVERWRITE_CRUCIAL,
    RESERVED_COLUMNS,
    MatchConfig,
)
from loanmatch.errors import (
    DuplicatedLoanIdError,
    DuplicatedPerfectMatchError,
    MatchingError,
    MissingColumnsError,
    ReservedColumnError,
)
from loanmatch.hierarchy import level_specs

logger = logging.getLogger(__name__)


def check_crucial_columns(data: pd.DataFrame, required: Sequence[str], what: str = "data") -> pd.DataFrame:
    missing = [col for col in required if col not in data.columns]
    if missing:
        raise MissingColumnsError(missing, what=what)
    return data


def check_reserved_columns(loanbook: pd.DataFrame, config: MatchConfig) -> pd.DataFrame:
    """Reject loanbook columns that collide with columns added by matching.

    With ``config.allow_reserved_columns`` the loanbook may bring ``sector``
    and ``borderline``, but only both together.
    """
    reserved = [col for col in RESERVED_COLUMNS if col in loanbook.columns]
    if config.allow_reserved_columns:
        present = [col for col in CALLER_SECTOR_COLUMNS if col in loanbook.columns]
        if present and len(present) != len(CALLER_SECTOR_COLUMNS):
            raise MatchingError(
                "Must have both `sector` and `borderline` when reserved columns are allowed; "
                f"found only: {', '.join(present)}"
            )
        reserved = [col for col in reserved if col not in CALLER_SECTOR_COLUMNS]
    if reserved:
        raise ReservedColumnError(reserved)
    return loanbook


def check_unique_loan_ids(loanbook: pd.DataFrame) -> pd.DataFrame:
    duplicated = loanbook[ID_LOAN].duplicated(keep="first")
    if duplicated.any():
        raise DuplicatedLoanIdError(pd.unique(loanbook.loc[duplicated, ID_LOAN]))
    return loanbook


def check_duplicated_perfect_matches(data: pd.DataFrame) -> pd.DataFrame:
    """Abort if any (id_loan, level) pair has more than one row with score 1."""
    perfect = data.loc[data["score"] == 1, [ID_LOAN, "level"]]
    duplicated = perfect.duplicated(keep="first")
    if duplicated.any():
        raise DuplicatedPerfectMatchError(list(perfect.index[duplicated]))
    return data


def check_overwrite(overwrite: Optional[pd.DataFrame]) -> Optional[pd.DataFrame]:
    if overwrite is None:
        return None
    return check_crucial_columns(overwrite, OVERWRITE_CRUCIAL, what="overwrite")


def validate_inputs(
    loanbook: pd.DataFrame,
    abcd: pd.DataFrame,
    overwrite: Optional[pd.DataFrame],
    config: MatchConfig,
) -> None:
    check_crucial_columns(loanbook, LOANBOOK_CRUCIAL, what="loanbook")
    check_crucial_columns(abcd, ABCD_CRUCIAL, what="abcd")
    check_overwrite(overwrite)
    check_reserved_columns(loanbook, config)
    level_specs(loanbook.columns)
    check_unique_loan_ids(loanbook)
    logger.debug("Validated loanbook (%d rows) and abcd (%d rows)", len(loanbook), len(abcd))
