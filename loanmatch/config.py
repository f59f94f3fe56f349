"""Column names, defaults and the configuration threaded through matching."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd

from loanmatch.errors import MissingColumnsError

BASE_DIR = Path(__file__).resolve().parent
SECTOR_CLASSIFICATIONS_PATH = BASE_DIR / "data" / "sector_classifications.csv"

DEFAULT_METHOD = "jw"
DEFAULT_MIN_SCORE = 0.8

ID_LOAN = "id_loan"
CLASSIFICATION_SYSTEM = "sector_classification_system"
CLASSIFICATION_CODE = "sector_classification_direct_loantaker"

DIRECT_LOANTAKER = "direct_loantaker"
INTERMEDIATE_PARENT = "intermediate_parent"
ULTIMATE_PARENT = "ultimate_parent"

LEVEL_PREFIXES = {
    DIRECT_LOANTAKER: "DL",
    INTERMEDIATE_PARENT: "IP",
    ULTIMATE_PARENT: "UP",
}

LOANBOOK_CRUCIAL = [
    ID_LOAN,
    "id_direct_loantaker",
    "name_direct_loantaker",
    "id_ultimate_parent",
    "name_ultimate_parent",
    CLASSIFICATION_SYSTEM,
    CLASSIFICATION_CODE,
]
ABCD_CRUCIAL = ["name_company", "sector"]
OVERWRITE_CRUCIAL = ["level", "id_match", "name", "sector", "source"]
CLASSIFICATION_CRUCIAL = ["code_system", "code", "sector", "borderline"]
PRIORITIZE_CRUCIAL = [ID_LOAN, "level", "score", "sector", "sector_abcd"]

RESERVED_COLUMNS = [
    "alias",
    "alias_abcd",
    "rowid",
    "sector",
    "borderline",
    "id_match",
    "level",
    "name",
    "sector_abcd",
    "name_abcd",
    "score",
    "source",
]
# The only reserved columns a caller may supply, and only together.
CALLER_SECTOR_COLUMNS = ["sector", "borderline"]

OUTPUT_COLUMNS = [
    "id_match",
    "level",
    "sector",
    "sector_abcd",
    "name",
    "name_abcd",
    "score",
    "source",
    "borderline",
]

TRUTHY = {"true", "t", "yes", "y", "1"}


def as_bool(series: pd.Series) -> pd.Series:
    if series.dtype == bool:
        return series
    return series.map(lambda value: str(value).strip().lower() in TRUTHY).astype(bool)


def load_sector_classifications(path: Optional[str | Path] = None) -> pd.DataFrame:
    """Load a sector classification lookup table.

    Parameters
    ----------
    path:
        Optional CSV with columns ``code_system, code, sector, borderline``.
        When ``None``, the table bundled with the package is used.
    """
    file_path = Path(path) if path is not None else SECTOR_CLASSIFICATIONS_PATH
    if not file_path.exists():
        raise FileNotFoundError(f"Sector classifications not found: {file_path}")
    table = pd.read_csv(file_path, dtype=str, keep_default_na=False)
    missing = [col for col in CLASSIFICATION_CRUCIAL if col not in table.columns]
    if missing:
        raise MissingColumnsError(missing, what="sector_classifications")
    table["borderline"] = as_bool(table["borderline"])
    return table


@dataclass
class MatchConfig:
    """Switches that alter validation and sector lookup.

    ``allow_reserved_columns`` lets a loanbook bring its own ``sector`` and
    ``borderline`` columns, which are then used instead of the lookup table.
    ``sector_classifications`` replaces the bundled lookup table.
    """

    allow_reserved_columns: bool = False
    sector_classifications: Optional[pd.DataFrame] = None

    def classifications(self) -> pd.DataFrame:
        if self.sector_classifications is None:
            return load_sector_classifications()
        table = self.sector_classifications
        missing = [col for col in CLASSIFICATION_CRUCIAL if col not in table.columns]
        if missing:
            raise MissingColumnsError(missing, what="sector_classifications")
        return table
