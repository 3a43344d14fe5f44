"""Tests for token estimation helpers."""

from papercontext.core.constants import TOKEN_ESTIMATE_CHARS_PER_TOKEN
from papercontext.core.utils.token_utils import (
    estimate_content_tokens,
    estimate_conversation_tokens,
    estimate_image_tokens,
    estimate_text_tokens,
)


class TestEstimateTextTokens:
    """Character-based text estimates."""

    def test_empty_text_is_zero(self):
        """Empty and None text cost nothing."""
        assert estimate_text_tokens("") == 0
        assert estimate_text_tokens(None) == 0

    def test_rounds_up(self):
        """Estimates are ceil(len / 4)."""
        assert estimate_text_tokens("a") == 1
        assert estimate_text_tokens("abcd") == 1
        assert estimate_text_tokens("abcde") == 2
        assert estimate_text_tokens("x" * 4000) == 1000

    def test_uses_shared_chars_per_token_constant(self):
        text = "x" * (TOKEN_ESTIMATE_CHARS_PER_TOKEN * 3)
        assert estimate_text_tokens(text) == 3
        assert estimate_text_tokens(text + "x") == 4


class TestEstimateContentTokens:
    """String and multipart content."""

    def test_string_content(self):
        assert estimate_content_tokens("abcdefgh") == 2

    def test_image_parts_have_fixed_cost(self):
        """Every image part counts 1024 tokens regardless of URL length."""
        content = [
            {"type": "text", "text": "abcd"},
            {"type": "image_url", "image_url": {"url": "data:image/png;base64," + "A" * 9000}},
            {"type": "image_url", "image_url": {"url": "https://example.org/x.png"}},
        ]
        assert estimate_content_tokens(content) == 1 + 2 * 1024

    def test_none_content(self):
        assert estimate_content_tokens(None) == 0


class TestEstimateConversationTokens:
    """Per-message overhead plus content."""

    def test_adds_overhead_per_message(self):
        messages = [
            {"role": "system", "content": "abcd"},
            {"role": "user", "content": ""},
        ]
        assert estimate_conversation_tokens(messages) == (4 + 1) + (4 + 0)

    def test_empty_conversation(self):
        assert estimate_conversation_tokens([]) == 0
        assert estimate_conversation_tokens(None) == 0

    def test_image_tokens(self):
        assert estimate_image_tokens(3) == 3072
        assert estimate_image_tokens(-1) == 0
