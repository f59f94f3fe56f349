import pandas as pd
import pytest

from loanmatch.config import load_sector_classifications
from loanmatch.errors import SomeSectorClassificationUnknownWarning, UnknownSectorClassificationError
from loanmatch.sectors import normalize_code, resolve_sectors


@pytest.fixture
def classifications():
    return load_sector_classifications()


def test_resolves_sector_and_borderline(fake_lbk, classifications):
    lbk = fake_lbk(sector_classification_direct_loantaker=["D35.11", "D35.1", "B05"])
    out = resolve_sectors(lbk, classifications)
    assert out["sector"].tolist() == ["power", "power", "coal"]
    assert out["borderline"].tolist() == [False, True, False]


def test_code_is_case_insensitive(fake_lbk, classifications):
    out = resolve_sectors(fake_lbk(sector_classification_direct_loantaker=" d35.11 "), classifications)
    assert out["sector"].tolist() == ["power"]


def test_system_is_case_sensitive(fake_lbk, classifications):
    with pytest.raises(UnknownSectorClassificationError):
        resolve_sectors(fake_lbk(sector_classification_system="nace"), classifications)


def test_numeric_codes_compare_as_text(fake_lbk, classifications):
    lbk = fake_lbk(sector_classification_system="SIC", sector_classification_direct_loantaker=4911.0)
    assert resolve_sectors(lbk, classifications)["sector"].tolist() == ["power"]


def test_some_unknown_warns_and_drops_them(fake_lbk, classifications):
    lbk = fake_lbk(sector_classification_direct_loantaker=["D35.11", "-999"])
    with pytest.warns(SomeSectorClassificationUnknownWarning, match="-999"):
        out = resolve_sectors(lbk, classifications)
    assert out["id_loan"].tolist() == ["L1"]


def test_all_unknown_errors(fake_lbk, classifications):
    lbk = fake_lbk(sector_classification_system=["bad", "bad"])
    with pytest.raises(UnknownSectorClassificationError, match="bad"):
        resolve_sectors(lbk, classifications)


def test_custom_lookup_table(fake_lbk):
    custom = pd.DataFrame(
        {"sector": ["Power"], "borderline": [False], "code": ["D35.11"], "code_system": ["XYZ"]}
    )
    out = resolve_sectors(fake_lbk(sector_classification_system="XYZ"), custom)
    assert out["sector"].tolist() == ["power"]


def test_empty_loanbook_resolves_to_empty(fake_lbk, classifications):
    out = resolve_sectors(fake_lbk().iloc[0:0], classifications)
    assert out.empty
    assert {"sector", "borderline"} <= set(out.columns)


@pytest.mark.parametrize(
    "raw, expected",
    [("D35.11", "d35.11"), (3510, "3510"), (3510.0, "3510"), (None, ""), (" B05 ", "b05")],
)
def test_normalize_code(raw, expected):
    assert normalize_code(raw) == expected
