"""Query tokenization and word-root span generation."""

import re
from collections.abc import Iterable

from searchterm_intel.core.config import DEFAULT_STOP_WORDS

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def tokenize(
    text: str,
    stop_words: frozenset[str] = DEFAULT_STOP_WORDS,
    min_token_length: int = 2,
) -> list[str]:
    """Split a search query into significant lower-case tokens.

    Every character outside ``[a-z0-9]`` (after lower-casing) acts as a
    separator. Tokens shorter than ``min_token_length`` and stop words are
    dropped.

    Args:
        text: Raw search query
        stop_words: Words never treated as significant
        min_token_length: Shortest token kept

    Returns:
        Tokens in query order; empty for empty input
    """
    if not text:
        return []
    return [
        token
        for token in _NON_ALNUM.sub(" ", text.lower()).split()
        if len(token) >= min_token_length and token not in stop_words
    ]


def generate_ngrams(tokens: list[str], n: int) -> list[str]:
    """Return every contiguous span of ``n`` tokens, space-joined."""
    if n < 1:
        return []
    return [" ".join(tokens[i : i + n]) for i in range(len(tokens) - n + 1)]


def build_core_roots(
    keyword_texts: Iterable[str],
    stop_words: frozenset[str] = DEFAULT_STOP_WORDS,
    min_token_length: int = 2,
) -> frozenset[str]:
    """Collect the tokens of actively targeted keywords.

    Any root containing one of these tokens is excluded from negative
    analysis, since the advertiser is deliberately bidding on it.
    """
    return frozenset(
        token
        for text in keyword_texts
        for token in tokenize(text, stop_words, min_token_length)
    )
