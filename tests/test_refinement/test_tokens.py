"""Tests for token estimation and budget validation."""

from src.refinement.tokens import (
    estimate_tokens,
    format_token_count,
    validate_token_count,
)


class TestEstimateTokens:
    """Tests for the estimation heuristic."""

    def test_empty(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("   \n") == 0

    def test_words_only(self):
        # 3 words * 1.3 = 3.9 -> 4
        assert estimate_tokens("add dark mode") == 4

    def test_punctuation_counts_half(self):
        # 2 words * 1.3 + 2 punctuation * 0.5 = 3.6 -> 4
        assert estimate_tokens("hello, world!") == 4

    def test_rounds_up(self):
        # 1 word * 1.3 = 1.3 -> 2
        assert estimate_tokens("word") == 2


class TestFormatTokenCount:
    def test_formats(self):
        assert format_token_count(999) == "999"
        assert format_token_count(1500) == "1.5k"
        assert format_token_count(2_500_000) == "2.5M"


class TestValidateTokenCount:
    """Tests for budget checks."""

    def test_within_budget(self):
        result = validate_token_count("add dark mode", max_tokens=100)
        assert result.is_valid
        assert result.warning is None
        assert result.error is None
        assert result.estimated_tokens == 4
        assert result.usage_percent == 4.0

    def test_warning_threshold(self):
        """Usage at or above the threshold warns but stays valid."""
        # 8 tokens of a 10 token budget
        text = "a b c d e f"  # 6 * 1.3 = 7.8 -> 8
        result = validate_token_count(text, max_tokens=10, warning_threshold=0.8)
        assert result.is_valid
        assert result.warning is not None
        assert "Large prompt" in result.warning

    def test_at_ceiling_is_invalid(self):
        """Exactly 100% usage is rejected."""
        text = "a b c d e f g"  # 7 * 1.3 = 9.1 -> 10
        result = validate_token_count(text, max_tokens=10)
        assert not result.is_valid
        assert "too long" in result.error

    def test_custom_threshold(self):
        result = validate_token_count("a b c", max_tokens=10, warning_threshold=0.5)
        # 3 * 1.3 = 3.9 -> 4 tokens, 40%
        assert result.warning is None
