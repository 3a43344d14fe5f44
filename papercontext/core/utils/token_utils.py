"""Conservative token estimation for text and chat messages.

Estimates are provider-agnostic (4 characters per token) and deliberately
err on the high side.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from papercontext.core.constants import (
    IMAGE_PART_ESTIMATED_TOKENS,
    MESSAGE_OVERHEAD_ESTIMATED_TOKENS,
    TOKEN_ESTIMATE_CHARS_PER_TOKEN,
)

if TYPE_CHECKING:
    from papercontext.core.models import MessageContent


def estimate_text_tokens(text: str | None) -> int:
    """Estimate tokens in text: ``ceil(len / 4)``, 0 for empty text."""
    if not text:
        return 0
    return math.ceil(len(text) / TOKEN_ESTIMATE_CHARS_PER_TOKEN)


def estimate_content_tokens(content: MessageContent | None) -> int:
    """Estimate tokens of message content.

    Text parts are estimated from their length; every image part counts as a
    fixed 1,024 tokens regardless of resolution.
    """
    if content is None:
        return 0
    if isinstance(content, str):
        return estimate_text_tokens(content)

    total = 0
    for part in content:
        if part.get("type") == "text":
            total += estimate_text_tokens(part.get("text", ""))  # type: ignore[arg-type]
        else:
            total += IMAGE_PART_ESTIMATED_TOKENS
    return total


def estimate_conversation_tokens(messages: Iterable[Mapping[str, Any]] | None) -> int:
    """Sum per-message overhead plus content tokens."""
    if not messages:
        return 0
    total = 0
    for message in messages:
        total += MESSAGE_OVERHEAD_ESTIMATED_TOKENS
        total += estimate_content_tokens(message.get("content"))
    return total


def estimate_image_tokens(image_count: int) -> int:
    """Fixed per-image estimate for ``image_count`` attachments."""
    return max(0, image_count) * IMAGE_PART_ESTIMATED_TOKENS
