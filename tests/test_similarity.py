import pytest

from loanmatch.errors import UnknownMethodError
from loanmatch.similarity import METHODS, similarity_matrix, string_similarity


@pytest.mark.parametrize("method", METHODS)
def test_identical_strings_score_one(method):
    assert string_similarity("alpine knits", "alpine knits", method) == 1.0


def test_jw_prefix_weight_changes_the_score():
    default = string_similarity("fontana sp", "fontana spa", "jw")
    assert default == string_similarity("fontana sp", "fontana spa", "jw", p=0.1)
    assert default != string_similarity("fontana sp", "fontana spa", "jw", p=0.2)


def test_different_methods_score_differently():
    jw = string_similarity("fontana sp", "fontana spa", "jw")
    osa = string_similarity("fontana sp", "fontana spa", "osa")
    assert jw != osa


def test_qgram_family_uses_q():
    assert string_similarity("abcd", "abce", "qgram", q=1) == pytest.approx(0.75)
    assert string_similarity("abcd", "abce", "qgram", q=2) == pytest.approx(2 / 3)
    assert string_similarity("abcd", "abce", "jaccard") == pytest.approx(0.6)
    assert string_similarity("ab", "cd", "cosine") == 0.0


def test_lcs_is_indel_normalized():
    assert string_similarity("abc", "abd", "lcs") == pytest.approx(2 / 3)


def test_similarity_matrix_shape():
    scores = similarity_matrix(["a", "b"], ["a", "b", "c"], "osa")
    assert scores.shape == (2, 3)
    assert scores[0, 0] == 1.0
    assert scores[1, 0] == 0.0
    assert similarity_matrix([], ["a", "b"]).shape == (0, 2)


def test_unknown_method_errors():
    with pytest.raises(UnknownMethodError, match="bad"):
        string_similarity("a", "b", "bad")
    with pytest.raises(ValueError):
        similarity_matrix([], [], "bad")


def test_unexpected_parameter_errors():
    with pytest.raises(TypeError, match="q"):
        string_similarity("a", "b", "osa", q=2)


@pytest.mark.parametrize("q", [0.5, 2.0, "2", True])
def test_non_integer_q_errors(q):
    with pytest.raises(TypeError, match="positive integer"):
        string_similarity("abcd", "abce", "qgram", q=q)


def test_q_below_one_errors():
    with pytest.raises(ValueError, match="positive integer"):
        similarity_matrix(["a"], ["b"], "jaccard", q=0)
