import argparse

import pandas as pd
import pytest

from loanmatch.cli import main, parse_args, parse_join_id, parse_param, validate_args
from loanmatch.errors import MatchingError


@pytest.fixture
def inputs(tmp_path, fake_lbk, fake_abcd):
    loanbook = tmp_path / "loanbook.csv"
    abcd = tmp_path / "abcd.csv"
    fake_lbk(id_loan=["L1", "L2"], name_direct_loantaker="Alpine Knits India Pvt. Limited").to_csv(
        loanbook, index=False
    )
    fake_abcd().to_csv(abcd, index=False)
    return loanbook, abcd


def test_parse_param():
    assert parse_param("p=0.2") == ("p", 0.2)
    assert parse_param("q=2") == ("q", 2)
    assert parse_param("weights=1,1,2") == ("weights", (1, 1, 2))
    with pytest.raises(argparse.ArgumentTypeError):
        parse_param("p")


def test_parse_join_id():
    assert parse_join_id(None) is None
    assert parse_join_id("lei") == "lei"
    assert parse_join_id("lei_direct_loantaker=lei") == {"lei_direct_loantaker": "lei"}


def test_priority_and_reverse_are_exclusive():
    args = parse_args(["prioritize", "--matched", "m.csv", "--out", "o.csv", "--priority", "a", "--reverse"])
    with pytest.raises(MatchingError):
        validate_args(args)


def test_match_then_prioritize(tmp_path, inputs):
    loanbook, abcd = inputs
    matched = tmp_path / "out" / "matched.csv"
    prioritized = tmp_path / "out" / "prioritized.csv"
    log = tmp_path / "run.log"

    main(["--log", str(log), "match", "--loanbook", str(loanbook), "--abcd", str(abcd), "--out", str(matched)])
    table = pd.read_csv(matched)
    assert table["level"].tolist() == ["direct_loantaker", "ultimate_parent"] * 2
    assert table["id_match"].tolist() == ["DL1", "UP1", "DL2", "UP2"]
    assert (table["score"] == 1).all()

    main(["--log", str(log), "prioritize", "--matched", str(matched), "--out", str(prioritized), "--reverse"])
    table = pd.read_csv(prioritized)
    assert table["id_loan"].tolist() == ["L1", "L2"]
    assert table["level"].tolist() == ["ultimate_parent", "ultimate_parent"]

    text = log.read_text(encoding="utf-8")
    assert "Starting match" in text
    assert "Starting prioritize" in text
    assert "Wrote 2 row(s)" in text


def test_match_with_method_parameters(tmp_path, inputs):
    loanbook, abcd = inputs
    out = tmp_path / "matched.csv"
    main(
        [
            "match",
            "--loanbook",
            str(loanbook),
            "--abcd",
            str(abcd),
            "--out",
            str(out),
            "--method",
            "qgram",
            "--param",
            "q=2",
            "--no-by-sector",
        ]
    )
    assert len(pd.read_csv(out)) == 4
