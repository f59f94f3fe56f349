"""Errors and warnings raised while matching a loanbook against ABCD."""
from __future__ import annotations

import logging
import warnings
from typing import Iterable, List, Sequence

logger = logging.getLogger(__name__)


class MatchingError(Exception):
    pass


class MissingColumnsError(MatchingError):
    def __init__(self, columns: Sequence[str], what: str = "data"):
        self.columns: List[str] = list(columns)
        super().__init__(f"`{what}` is missing required column(s): {', '.join(self.columns)}")


class ReservedColumnError(MatchingError):
    def __init__(self, columns: Sequence[str]):
        self.columns: List[str] = list(columns)
        super().__init__(
            f"`loanbook` must not have reserved column(s): {', '.join(self.columns)}. "
            "Rename or drop them before matching"
        )


class NameWithoutIdError(MatchingError):
    def __init__(self, columns: Sequence[str]):
        self.columns: List[str] = list(columns)
        super().__init__(
            f"`loanbook` has name but not id column(s) for: {', '.join(self.columns)}"
        )


class DuplicatedLoanIdError(MatchingError):
    def __init__(self, loan_ids: Sequence[object]):
        self.loan_ids: List[object] = list(loan_ids)
        super().__init__(
            f"`id_loan` must be unique. Duplicated loan id(s): {', '.join(map(str, self.loan_ids))}"
        )


class UnknownSectorClassificationError(MatchingError):
    pass


class DuplicatedPerfectMatchError(MatchingError):
    def __init__(self, rows: Sequence[object]):
        self.rows: List[object] = list(rows)
        super().__init__(
            "`data` where `score` is `1` must be unique by `id_loan` by `level`. "
            f"Duplicated rows: {', '.join(map(str, self.rows))}. "
            "Have you ensured that only one abcd-name per loanbook-name is set to `1`?"
        )


class UnknownMethodError(MatchingError, ValueError):
    pass


class MatchingWarning(UserWarning):
    pass


class NoMatchWarning(MatchingWarning):
    pass


class SomeSectorClassificationUnknownWarning(MatchingWarning):
    pass


class OverwriteWarning(MatchingWarning):
    pass


class UnknownPriorityLevelWarning(MatchingWarning):
    pass


def warn(message: str, category: type, stacklevel: int = 3) -> None:
    """Emit ``message`` as a warning of ``category`` and mirror it in the log."""
    logger.warning("%s: %s", category.__name__, message)
    warnings.warn(message, category, stacklevel=stacklevel)


def commas(values: Iterable[object]) -> str:
    return ", ".join(str(value) for value in values)
