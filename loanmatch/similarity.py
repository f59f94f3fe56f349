"""String similarity in [0, 1] between name aliases.

Edit-distance methods delegate to :mod:`rapidfuzz.distance`; the q-gram
family (``qgram``, ``cosine``, ``jaccard``) is computed from character
q-gram profiles.
"""
from __future__ import annotations

import math
import numbers
from collections import Counter
from typing import Callable, Dict, Sequence, Tuple

import numpy as np
from rapidfuzz import process
from rapidfuzz.distance import (
    DamerauLevenshtein,
    Hamming,
    Indel,
    Jaro,
    JaroWinkler,
    Levenshtein,
    OSA,
)

from loanmatch.errors import UnknownMethodError

# method -> (rapidfuzz scorer, {our parameter name: rapidfuzz keyword}, defaults)
EDIT_SCORERS: Dict[str, Tuple[Callable, Dict[str, str], Dict[str, object]]] = {
    "jw": (JaroWinkler.normalized_similarity, {"p": "prefix_weight"}, {"p": 0.1}),
    "jaro": (Jaro.normalized_similarity, {}, {}),
    "lv": (Levenshtein.normalized_similarity, {"weights": "weights"}, {}),
    "osa": (OSA.normalized_similarity, {}, {}),
    "dl": (DamerauLevenshtein.normalized_similarity, {}, {}),
    "hamming": (Hamming.normalized_similarity, {}, {}),
    "lcs": (Indel.normalized_similarity, {}, {}),
}


def qgram_profile(text: str, q: int) -> Counter:
    if q < 1:
        raise ValueError(f"`q` must be a positive integer, not {q!r}")
    return Counter(text[i : i + q] for i in range(len(text) - q + 1))


def _qgram_similarity(a: Counter, b: Counter) -> float:
    total = sum(a.values()) + sum(b.values())
    if total == 0:
        return 1.0
    keys = set(a) | set(b)
    distance = sum(abs(a[key] - b[key]) for key in keys)
    return 1.0 - distance / total


def _cosine_similarity(a: Counter, b: Counter) -> float:
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    dot = sum(count * b[key] for key, count in a.items())
    norm = math.sqrt(sum(c * c for c in a.values()) * sum(c * c for c in b.values()))
    return min(1.0, dot / norm)


def _jaccard_similarity(a: Counter, b: Counter) -> float:
    if not a and not b:
        return 1.0
    left, right = set(a), set(b)
    return len(left & right) / len(left | right)


QGRAM_SCORERS: Dict[str, Callable[[Counter, Counter], float]] = {
    "qgram": _qgram_similarity,
    "cosine": _cosine_similarity,
    "jaccard": _jaccard_similarity,
}

METHODS = sorted(list(EDIT_SCORERS) + list(QGRAM_SCORERS))


def check_method(method: str, **params: object) -> None:
    """Fail early on an unknown method or a parameter it does not take."""
    if method in EDIT_SCORERS:
        accepted = set(EDIT_SCORERS[method][1])
    elif method in QGRAM_SCORERS:
        accepted = {"q"}
    else:
        raise UnknownMethodError(
            f"Unknown similarity method {method!r}. Use one of: {', '.join(METHODS)}"
        )
    unknown = [key for key in params if key not in accepted]
    if unknown:
        raise TypeError(f"Method {method!r} got unexpected parameter(s): {', '.join(unknown)}")
    q = params.get("q", 1)
    if isinstance(q, bool) or not isinstance(q, numbers.Integral):
        raise TypeError(f"`q` must be a positive integer, not {q!r}")
    if q < 1:
        raise ValueError(f"`q` must be a positive integer, not {q!r}")


def _edit_kwargs(method: str, params: Dict[str, object]) -> Dict[str, object]:
    _, names, defaults = EDIT_SCORERS[method]
    merged = {**defaults, **params}
    return {names[key]: value for key, value in merged.items()}


def similarity_matrix(
    queries: Sequence[str],
    choices: Sequence[str],
    method: str = "jw",
    **params: object,
) -> np.ndarray:
    """Score every query against every choice.

    Returns a ``len(queries) x len(choices)`` float matrix. ``params`` are
    handed to the chosen method verbatim, e.g. ``p`` for ``jw`` or ``q`` for
    the q-gram methods.
    """
    check_method(method, **params)
    if not len(queries) or not len(choices):
        return np.zeros((len(queries), len(choices)), dtype=np.float64)
    if method in EDIT_SCORERS:
        scorer = EDIT_SCORERS[method][0]
        return process.cdist(
            list(queries),
            list(choices),
            scorer=scorer,
            scorer_kwargs=_edit_kwargs(method, params),
            dtype=np.float64,
            workers=1,
        )
    q = int(params.get("q", 1))
    score = QGRAM_SCORERS[method]
    query_profiles = [qgram_profile(text, q) for text in queries]
    choice_profiles = [qgram_profile(text, q) for text in choices]
    scores = np.empty((len(queries), len(choices)), dtype=np.float64)
    for i, left in enumerate(query_profiles):
        for j, right in enumerate(choice_profiles):
            scores[i, j] = score(left, right)
    return scores


def string_similarity(a: str, b: str, method: str = "jw", **params: object) -> float:
    return float(similarity_matrix([a], [b], method, **params)[0, 0])
