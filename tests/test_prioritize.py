import pandas as pd
import pytest

from loanmatch.errors import (
    DuplicatedPerfectMatchError,
    MissingColumnsError,
    UnknownPriorityLevelWarning,
)
from loanmatch.prioritize import Priority, prioritize, prioritize_level


def test_prioritize_level_orders_direct_intermediate_ultimate():
    data = pd.DataFrame(
        {
            "level": [
                "ultimate_parent",
                "intermediate_parent_10",
                "direct_loantaker",
                "intermediate_parent_2",
                "something_else",
            ]
        }
    )
    assert prioritize_level(data) == [
        "direct_loantaker",
        "intermediate_parent_2",
        "intermediate_parent_10",
        "ultimate_parent",
    ]


def test_default_priority_picks_the_lowest_level(matched_demo):
    out = prioritize(matched_demo)
    assert out["id_loan"].tolist() == ["aa", "bb"]
    assert out["level"].tolist() == ["direct_loantaker", "intermediate_parent"]


def test_reversed_priority_picks_the_highest_level(matched_demo):
    out = prioritize(matched_demo, priority=lambda levels: list(reversed(levels)))
    assert out["level"].tolist() == ["ultimate_parent", "ultimate_parent"]


def test_explicit_priority(matched_demo):
    out = prioritize(matched_demo, priority=["ultimate_parent", "direct_loantaker"])
    assert out["level"].tolist() == ["ultimate_parent", "ultimate_parent"]

    out = prioritize(matched_demo, priority=Priority.explicit(["intermediate_parent"]))
    assert out.set_index("id_loan")["level"].to_dict() == {
        "aa": "direct_loantaker",
        "bb": "intermediate_parent",
    }


def test_priority_coerce():
    assert Priority.coerce(None) == Priority.default()
    assert Priority.coerce("ultimate_parent") == Priority.explicit(["ultimate_parent"])
    assert Priority.coerce(["a", "b"]).levels == ("a", "b")
    assert Priority.coerce(sorted).kind == "transform"


def test_unknown_priority_level_warns(matched_demo):
    with pytest.warns(UnknownPriorityLevelWarning, match="bad"):
        out = prioritize(matched_demo, priority=["bad", "ultimate_parent"])
    assert out["level"].tolist() == ["ultimate_parent", "ultimate_parent"]


def test_empty_data_is_returned_unchanged():
    empty = pd.DataFrame(columns=["id_loan", "level", "score", "sector", "sector_abcd"])
    assert prioritize(empty) is empty


def test_only_perfect_matches_are_kept(matched_demo):
    data = matched_demo.assign(score=[0.9, 0.9, 1.0, 0.5])
    out = prioritize(data)
    assert out["id_loan"].tolist() == ["bb"]
    assert out["level"].tolist() == ["intermediate_parent"]


def test_duplicated_perfect_matches_error(matched_demo):
    data = pd.concat([matched_demo, matched_demo.iloc[[0]]], ignore_index=True)
    with pytest.raises(DuplicatedPerfectMatchError, match="Duplicated rows: 4"):
        prioritize(data)


def test_missing_columns_error(matched_demo):
    with pytest.raises(MissingColumnsError, match="sector_abcd"):
        prioritize(matched_demo.drop(columns="sector_abcd"))


def test_one_row_per_abcd_sector():
    data = pd.DataFrame(
        {
            "id_loan": ["aa", "aa"],
            "level": ["direct_loantaker", "ultimate_parent"],
            "score": [1.0, 1.0],
            "sector": ["power", "power"],
            "sector_abcd": ["power", "coal"],
        }
    )
    out = prioritize(data)
    assert out["sector_abcd"].tolist() == ["power", "coal"]


def test_extra_columns_are_kept(matched_demo):
    data = matched_demo.assign(amount=[1, 2, 3, 4], name_abcd="x")
    out = prioritize(data)
    assert list(out.columns) == list(data.columns)
    assert out["amount"].tolist() == [2, 3]
