"""Tests for max-token and input-cap normalization."""

import pytest

from papercontext.core.constants import (
    DEFAULT_INPUT_TOKEN_CAP,
    DEFAULT_MAX_TOKENS,
    MAX_ALLOWED_INPUT_TOKEN_CAP,
    MAX_ALLOWED_TOKENS,
)
from papercontext.core.utils.normalization import (
    normalize_input_token_cap,
    normalize_max_tokens,
)


class TestNormalizeMaxTokens:
    """Output token normalization."""

    @pytest.mark.parametrize("value", [None, "", "abc", 0, -5, float("nan"), True])
    def test_invalid_values_fall_back_to_default(self, value):
        assert normalize_max_tokens(value) == DEFAULT_MAX_TOKENS

    def test_accepts_ints_floats_and_strings(self):
        """Strings are parsed like form input; floats are floored."""
        assert normalize_max_tokens(200) == 200
        assert normalize_max_tokens(200.9) == 200
        assert normalize_max_tokens(" 300 ") == 300
        assert normalize_max_tokens("1200tokens") == 1200

    def test_clamps_to_maximum(self):
        assert normalize_max_tokens(10**9) == MAX_ALLOWED_TOKENS


class TestNormalizeInputTokenCap:
    """Input cap override against the model limit fallback."""

    def test_missing_override_uses_fallback(self):
        assert normalize_input_token_cap(None, 400_000) == 400_000

    def test_override_wins_over_fallback(self):
        assert normalize_input_token_cap(2048, 128_000) == 2048
        assert normalize_input_token_cap("32000", 128_000) == 32_000

    def test_invalid_fallback_uses_default(self):
        assert normalize_input_token_cap(None, 0) == DEFAULT_INPUT_TOKEN_CAP

    def test_clamps_to_maximum(self):
        assert normalize_input_token_cap(10**12) == MAX_ALLOWED_INPUT_TOKEN_CAP
        assert normalize_input_token_cap(None, 10**12) == MAX_ALLOWED_INPUT_TOKEN_CAP
