"""
AntiSpam - Text Similarity Tests
================================

Tests for normalization, shingling and the Jaccard score.
"""

import pytest

from src.services.antispam import similarity


class TestNormalize:
    """Tests for text normalization."""

    def test_lowercases_and_collapses_whitespace(self):
        """Case and whitespace runs don't matter."""
        assert similarity.normalize("  Buy   CHEAP\tgold\n now ") == "buy cheap gold now"

    def test_strips_zero_width_characters(self):
        """Zero-width characters are removed, not replaced."""
        assert similarity.normalize("b\u200bu\u200cy\u200d \ufeffgold") == "buy gold"

    def test_empty(self):
        """Empty and whitespace-only text normalize to empty."""
        assert similarity.normalize("") == ""
        assert similarity.normalize(" \n\t ") == ""


class TestShingles:
    """Tests for shingle generation."""

    def test_three_character_shingles(self):
        """Contiguous 3-character substrings."""
        assert similarity.shingles("abcd") == frozenset({"abc", "bcd"})

    def test_short_text_is_singleton(self):
        """Text shorter than the shingle size is a single shingle."""
        assert similarity.shingles("ab") == frozenset({"ab"})

    def test_empty_text(self):
        """Empty text has no shingles."""
        assert similarity.shingles("") == frozenset()


class TestCalculate:
    """Tests for the similarity score."""

    @pytest.mark.parametrize("text", ["a", "hi", "buy cheap gold now", "🔥🔥🔥 free nitro"])
    def test_identical_is_one(self, text):
        """Any non-empty string is identical to itself."""
        assert similarity.calculate(text, text) == 1.0

    def test_both_empty_is_one(self):
        """Two empty strings count as identical."""
        assert similarity.calculate("", "") == 1.0

    def test_one_empty_is_zero(self):
        """Exactly one empty string scores zero."""
        assert similarity.calculate("", "x") == 0.0
        assert similarity.calculate("x", "") == 0.0

    def test_blank_counts_as_empty(self):
        """Whitespace and zero-width only content normalizes to empty."""
        assert similarity.calculate("  \u200b ", "") == 1.0

    def test_symmetric(self):
        """Score doesn't depend on argument order."""
        a, b = "buy cheap gold now", "buy cheep gold now!!"
        assert similarity.calculate(a, b) == similarity.calculate(b, a)

    def test_trailing_punctuation_stays_above_default_threshold(self):
        """Appended punctuation only adds two shingles."""
        assert similarity.calculate("buy cheap gold now", "buy cheap gold now!!") == pytest.approx(16 / 18)

    def test_typo_and_punctuation_score(self):
        """A one-letter typo plus punctuation shares 13 of 21 shingles."""
        assert similarity.calculate("buy cheap gold now", "buy cheep gold now!!") == pytest.approx(13 / 21)

    def test_unrelated_text_scores_low(self):
        """Different messages share few shingles."""
        assert similarity.calculate("buy cheap gold now", "see you at the meeting tomorrow") < 0.2

    def test_normalization_applies(self):
        """Case, spacing and zero-width characters are ignored."""
        assert similarity.calculate("BUY  cheap\u200b gold", "buy cheap gold") == 1.0

    def test_score_in_unit_interval(self):
        """Scores are always within [0, 1]."""
        score = similarity.calculate("hello world", "world hello")
        assert 0.0 <= score <= 1.0
