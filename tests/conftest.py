from __future__ import annotations

from typing import Callable, Dict

import pandas as pd
import pytest

LOANBOOK_DEFAULTS: Dict[str, object] = {
    "id_loan": "L1",
    "id_direct_loantaker": "C294",
    "name_direct_loantaker": "Yuamen Xinneng Thermal Power Co Ltd",
    "id_ultimate_parent": "UP15",
    "name_ultimate_parent": "Alpine Knits India Pvt. Limited",
    "sector_classification_system": "NACE",
    "sector_classification_direct_loantaker": "D35.11",
}

ABCD_DEFAULTS: Dict[str, object] = {
    "name_company": "alpine knits india pvt. limited",
    "sector": "power",
}


def build_frame(defaults: Dict[str, object], overrides: Dict[str, object]) -> pd.DataFrame:
    data = {**defaults, **overrides}
    lengths = [len(value) for value in data.values() if isinstance(value, (list, tuple))]
    n_rows = max(lengths, default=1)
    if n_rows > 1 and "id_loan" in defaults and "id_loan" not in overrides:
        data["id_loan"] = [f"L{i}" for i in range(1, n_rows + 1)]
    columns = {
        key: list(value) if isinstance(value, (list, tuple)) else [value] * n_rows
        for key, value in data.items()
    }
    return pd.DataFrame(columns)


def make_loanbook(**overrides: object) -> pd.DataFrame:
    return build_frame(LOANBOOK_DEFAULTS, overrides)


def make_abcd(**overrides: object) -> pd.DataFrame:
    return build_frame(ABCD_DEFAULTS, overrides)


@pytest.fixture
def fake_lbk() -> Callable[..., pd.DataFrame]:
    return make_loanbook


@pytest.fixture
def fake_abcd() -> Callable[..., pd.DataFrame]:
    return make_abcd


@pytest.fixture
def matched_demo() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "sector": ["coal", "coal", "coal", "coal"],
            "sector_abcd": ["coal", "coal", "coal", "coal"],
            "score": [1.0, 1.0, 1.0, 1.0],
            "id_loan": ["aa", "aa", "bb", "bb"],
            "level": ["ultimate_parent", "direct_loantaker", "intermediate_parent", "ultimate_parent"],
        }
    )
