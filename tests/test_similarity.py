import pytest

from moontv_search.search.similarity import (
    normalize_for_match,
    normalize_title,
    similarity,
    title_acronym,
)


@pytest.mark.parametrize("text", ["naruto", "测试视频", "a", "the wandering earth"])
def test_identical_strings_are_fully_similar(text):
    assert similarity(text, text) == 1.0


def test_empty_strings():
    assert similarity("", "") == 1.0
    assert similarity("", "abc") == 0.0
    assert similarity("abc", "") == 0.0


def test_one_substitution():
    assert similarity("abcd", "abxd") == pytest.approx(0.75)


@pytest.mark.parametrize("a,b", [
    ("naruto", "boruto"),
    ("流浪地球", "流浪地球2"),
    ("kitten", "sitting"),
])
def test_symmetric(a, b):
    assert similarity(a, b) == similarity(b, a)


def test_completely_different_strings():
    assert similarity("abc", "xyz") == 0.0


def test_normalize_for_match_collapses_whitespace():
    assert normalize_for_match("  The   Wandering\tEarth ") == "the wandering earth"
    assert normalize_for_match("") == ""


def test_normalize_title_strips_punctuation():
    assert normalize_title("测试视频  ") == "测试视频"
    assert normalize_title("测试视频：终极版") == "测试视频终极版"
    assert normalize_title("One-Piece!") == "onepiece"
    assert normalize_title("Spider_Man:  Homecoming") == "spiderman homecoming"


def test_normalize_title_folds_full_width_forms():
    assert normalize_title("ＡＢＣ　２０２３") == "abc 2023"


def test_title_acronym():
    assert title_acronym("Attack on Titan") == "aot"
    assert title_acronym("Attack-On Titan!!") == "aot"
    assert title_acronym("测试视频") == "测"
    assert title_acronym("") == ""
