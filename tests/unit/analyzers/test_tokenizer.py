"""Tests for query tokenization and core-root construction."""

from searchterm_intel.analyzers.tokenizer import (
    build_core_roots,
    generate_ngrams,
    tokenize,
)


class TestTokenize:
    """Test tokenize function."""

    def test_lowercases_and_splits_on_non_alphanumerics(self):
        """Punctuation and whitespace both separate tokens."""
        assert tokenize("Wireless-Earbuds, BLUETOOTH 5.0") == [
            "wireless",
            "earbuds",
            "bluetooth",
        ]

    def test_drops_stop_words(self):
        """Stop words never become tokens."""
        assert tokenize("case for the iphone") == ["case", "iphone"]

    def test_drops_short_tokens(self):
        """Tokens shorter than the minimum length are dropped."""
        assert tokenize("x usb c cable") == ["usb", "cable"]
        assert tokenize("x usb c cable", min_token_length=1) == [
            "x",
            "usb",
            "c",
            "cable",
        ]

    def test_custom_stop_words(self):
        """A custom stop-word set replaces the default one."""
        assert tokenize("the best case", stop_words=frozenset({"best"})) == [
            "the",
            "case",
        ]

    def test_empty_and_separator_only_input(self):
        """Empty or punctuation-only text yields no tokens."""
        assert tokenize("") == []
        assert tokenize("   ---  !!") == []

    def test_keeps_digits(self):
        """Alphanumeric tokens such as model numbers survive."""
        assert tokenize("airpods pro2 case") == ["airpods", "pro2", "case"]


class TestGenerateNgrams:
    """Test generate_ngrams function."""

    def test_contiguous_spans(self):
        """Spans are contiguous and space-joined."""
        tokens = ["cheap", "wireless", "earbuds"]
        assert generate_ngrams(tokens, 1) == ["cheap", "wireless", "earbuds"]
        assert generate_ngrams(tokens, 2) == ["cheap wireless", "wireless earbuds"]
        assert generate_ngrams(tokens, 3) == ["cheap wireless earbuds"]

    def test_span_longer_than_tokens(self):
        """No spans when n exceeds the token count."""
        assert generate_ngrams(["earbuds"], 2) == []
        assert generate_ngrams([], 1) == []

    def test_non_positive_n(self):
        """n below one produces nothing."""
        assert generate_ngrams(["a", "b"], 0) == []


class TestBuildCoreRoots:
    """Test build_core_roots function."""

    def test_collects_tokens_of_all_keywords(self):
        """Every significant token of every keyword is a core root."""
        roots = build_core_roots(["Wireless Earbuds", "earbuds case"])
        assert roots == frozenset({"wireless", "earbuds", "case"})

    def test_stop_words_are_not_core_roots(self):
        """Keyword stop words do not shield roots from analysis."""
        assert build_core_roots(["case for iphone"]) == frozenset({"case", "iphone"})

    def test_empty_inventory(self):
        """No keywords means no exclusions."""
        assert build_core_roots([]) == frozenset()
