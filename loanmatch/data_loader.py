"""Loading helpers for loanbook, ABCD and overwrite tables."""
from __future__ import annotations

from pathlib import Path

import pandas as pd

from loanmatch.errors import MatchingError

# Identifier-like columns read as text so codes such as "0510" keep their zeros.
TEXT_COLUMN_PREFIXES = ("id_", "name_", "sector_classification")


def _text_columns(path: Path) -> dict:
    header = pd.read_csv(path, nrows=0).columns
    return {col: str for col in header if str(col).startswith(TEXT_COLUMN_PREFIXES)}


def load_table(path: str | Path) -> pd.DataFrame:
    """Load a table from CSV or Parquet.

    Parameters
    ----------
    path:
        Path to a ``.csv`` or ``.parquet`` file.
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    if file_path.suffix.lower() in {".parquet", ".pq"}:
        return pd.read_parquet(file_path)
    if file_path.suffix.lower() == ".csv":
        return pd.read_csv(file_path, dtype=_text_columns(file_path))

    raise MatchingError(f"Unsupported file format: {file_path.suffix}. Use CSV or Parquet.")
