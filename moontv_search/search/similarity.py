"""
String similarity helpers shared by the scorer and deduplicator.

Edit distance comes from rapidfuzz; the normalization here only does
the text cleanup each caller needs before comparing.
"""

import re
import unicodedata

from rapidfuzz.distance import Levenshtein

_WHITESPACE = re.compile(r'\s+')
# Punctuation, symbols and underscore; \w keeps CJK and other letters
_NON_WORD = re.compile(r'[^\w\s]|_')
_WORD_SPLIT = re.compile(r'[\W_]+')


def similarity(a: str, b: str) -> float:
    """
    Normalized Levenshtein similarity in [0, 1].

    Callers case-fold and trim both strings first.

    Examples:
        similarity("naruto", "naruto") -> 1.0
        similarity("", "")             -> 1.0
        similarity("", "boruto")       -> 0.0
        similarity("naruto", "boruto") -> 0.666...
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / longest


def normalize_for_match(text: str) -> str:
    """Casefold, trim and collapse whitespace to single spaces."""
    if not text:
        return ""
    return _WHITESPACE.sub(' ', text.casefold()).strip()


def normalize_title(title: str) -> str:
    """
    Normalize a title for identity matching.

    Steps:
      1. Unicode NFKC (full-width forms, compatibility characters)
      2. Casefold
      3. Strip punctuation and symbols
      4. Collapse whitespace

    Examples:
        "测试视频  "       -> "测试视频"
        "测试视频：终极版" -> "测试视频终极版"
        "One-Piece!"      -> "onepiece"
    """
    if not title:
        return ""
    normalized = unicodedata.normalize('NFKC', title).casefold()
    normalized = _NON_WORD.sub('', normalized)
    return _WHITESPACE.sub(' ', normalized).strip()


def title_acronym(title: str) -> str:
    """
    First character of each alphanumeric word.

    "Attack on Titan" -> "aot"
    """
    if not title:
        return ""
    normalized = unicodedata.normalize('NFKC', title).casefold()
    words = _WORD_SPLIT.split(normalized)
    return ''.join(w[0] for w in words if w)
