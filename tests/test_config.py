import pandas as pd
import pytest

from loanmatch.config import MatchConfig, as_bool, load_sector_classifications
from loanmatch.errors import MissingColumnsError


def test_bundled_classifications_load():
    table = load_sector_classifications()
    assert {"code_system", "code", "sector", "borderline"} <= set(table.columns)
    assert table["borderline"].dtype == bool
    assert {"NACE", "ISIC", "NAICS", "SIC"} <= set(table["code_system"])


def test_custom_classifications_need_all_columns(tmp_path):
    path = tmp_path / "custom.csv"
    path.write_text("code_system,code,sector\nXYZ,1,power\n", encoding="utf-8")
    with pytest.raises(MissingColumnsError, match="borderline"):
        load_sector_classifications(path)


def test_config_checks_custom_classifications():
    config = MatchConfig(sector_classifications=pd.DataFrame({"code": ["1"]}))
    with pytest.raises(MissingColumnsError):
        config.classifications()


def test_as_bool_reads_text_flags():
    flags = as_bool(pd.Series(["TRUE", "False", "yes", "0", ""]))
    assert flags.tolist() == [True, False, True, False, False]
