"""Company name normalization used on both sides of the fuzzy join."""
from __future__ import annotations

import unicodedata
from typing import List, Optional

import pandas as pd
import regex

LEGAL_SUFFIXES = {
    "ab",
    "ag",
    "as",
    "asa",
    "bhd",
    "bv",
    "co",
    "company",
    "corp",
    "corporation",
    "gmbh",
    "inc",
    "incorporated",
    "jsc",
    "kg",
    "limited",
    "llc",
    "llp",
    "lp",
    "ltd",
    "nv",
    "oao",
    "ojsc",
    "oy",
    "oyj",
    "pjsc",
    "plc",
    "private",
    "pt",
    "pte",
    "pty",
    "pvt",
    "sa",
    "sab",
    "sarl",
    "sas",
    "se",
    "spa",
    "srl",
    "tbk",
}

MARK_PATTERN = regex.compile(r"\p{M}+")
AND_PATTERN = regex.compile(r"\s*[&+]\s*")
DOT_PATTERN = regex.compile(r"\.")
PUNCT_PATTERN = regex.compile(r"[^\p{L}\p{N}\s]+")
SPACE_PATTERN = regex.compile(r"[\s\u00A0\u2000-\u200F\u202F\u205F\u3000]+")


def _strip_marks(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return unicodedata.normalize("NFC", MARK_PATTERN.sub("", decomposed))


def _strip_legal_suffixes(tokens: List[str]) -> List[str]:
    stripped = list(tokens)
    while stripped and stripped[-1] in LEGAL_SUFFIXES:
        stripped.pop()
    return stripped


def to_alias(value: Optional[object]) -> str:
    """Return the canonical alias of a company name.

    The alias is lowercase, has no diacritics nor punctuation, has trailing
    legal-entity suffixes (``inc``, ``ltd``, ``corp``, ...) removed and its
    whitespace collapsed. A name made only of suffixes keeps them.
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    text = _strip_marks(str(value)).casefold()
    text = AND_PATTERN.sub(" and ", text)
    text = DOT_PATTERN.sub("", text)
    text = PUNCT_PATTERN.sub(" ", text)
    tokens = SPACE_PATTERN.sub(" ", text).strip().split(" ")
    tokens = [token for token in tokens if token]
    stripped = _strip_legal_suffixes(tokens)
    return " ".join(stripped or tokens)


def to_alias_series(series: pd.Series) -> pd.Series:
    cache = {value: to_alias(value) for value in series.dropna().unique()}
    return series.map(lambda value: cache.get(value, "") if not pd.isna(value) else "").astype(object)
