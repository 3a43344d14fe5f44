"""Final safety net that keeps an outgoing conversation under the input cap.

Messages are reduced in a fixed order until the estimate fits the soft
limit (90% of the cap, at least 1,024 tokens):

1. Drop history, oldest first. System messages and the latest user message
   are kept.
2. Trim the document-context system message, appending a truncation notice.
   A context message that can no longer shrink is removed.
3. Trim the latest user message (text first, then trailing images).
4. Fall back to the system messages plus the latest user message and trim
   that user message again.

The caller's messages are never mutated.
"""

from __future__ import annotations

import copy
from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from papercontext.core.constants import (
    CONTEXT_PREFIX,
    CONTEXT_TRIM_PASSES,
    CONTEXT_TRUNCATION_NOTICE,
    MIN_CONTEXT_CHARS,
    MIN_PROMPT_CHARS,
    MIN_SOFT_LIMIT_TOKENS,
    PROMPT_TRIM_PASSES,
    PROMPT_TRUNCATION_NOTICE,
    TOKEN_ESTIMATE_CHARS_PER_TOKEN,
    TOKEN_SAFETY_RATIO,
)
from papercontext.core.models import ChatMessage
from papercontext.core.utils.model_limits import get_model_input_token_limit
from papercontext.core.utils.normalization import normalize_input_token_cap
from papercontext.core.utils.token_utils import estimate_conversation_tokens


@dataclass
class InputCapResult:
    """Capped messages plus the accounting behind the decision."""

    messages: list[ChatMessage]
    capped: bool
    limit_tokens: int
    soft_limit_tokens: int
    estimated_before_tokens: int
    estimated_after_tokens: int


def strip_trailing_notice(text: str, notice: str) -> str:
    if not text:
        return ""
    suffix = f"\n\n{notice}"
    if text.endswith(suffix):
        return text[: len(text) - len(suffix)].rstrip()
    return text


def truncate_with_notice(text: str, max_chars: int, notice: str) -> str:
    """Cut ``text`` to ``max_chars`` including a trailing notice.

    Re-truncating never stacks notices. When the limit is too small to hold
    the notice the text is cut without one.
    """
    if max_chars <= 0:
        return notice
    source = strip_trailing_notice(text, notice)
    if len(source) <= max_chars:
        return source
    suffix = f"\n\n{notice}"
    if max_chars <= len(suffix) + 8:
        return source[:max_chars].rstrip()
    body_limit = max(0, max_chars - len(suffix))
    return f"{source[:body_limit].rstrip()}{suffix}"


def _overflow_chars(overflow_tokens: int) -> int:
    return max(TOKEN_ESTIMATE_CHARS_PER_TOKEN, overflow_tokens * TOKEN_ESTIMATE_CHARS_PER_TOKEN)


def _find_last_user_index(messages: Sequence[ChatMessage]) -> int:
    for index in range(len(messages) - 1, -1, -1):
        if messages[index]["role"] == "user":
            return index
    return -1


def _find_context_index(messages: Sequence[ChatMessage]) -> int:
    for index, message in enumerate(messages):
        content = message["content"]
        if (
            message["role"] == "system"
            and isinstance(content, str)
            and content.startswith(CONTEXT_PREFIX)
        ):
            return index
    return -1


def _trim_context_message(message: ChatMessage, overflow_tokens: int) -> bool:
    content = message["content"]
    if not isinstance(content, str) or not content.startswith(CONTEXT_PREFIX):
        return False
    body = strip_trailing_notice(content[len(CONTEXT_PREFIX) :], CONTEXT_TRUNCATION_NOTICE)
    if not body:
        return False
    next_chars = max(MIN_CONTEXT_CHARS, len(body) - _overflow_chars(overflow_tokens))
    if next_chars >= len(body):
        return False
    message["content"] = (
        f"{CONTEXT_PREFIX}{truncate_with_notice(body, next_chars, CONTEXT_TRUNCATION_NOTICE)}"
    )
    return True


def _trim_user_message(message: ChatMessage, overflow_tokens: int) -> bool:
    overflow_chars = _overflow_chars(overflow_tokens)
    content = message["content"]
    if isinstance(content, str):
        source = strip_trailing_notice(content, PROMPT_TRUNCATION_NOTICE)
        if not source:
            return False
        next_chars = max(MIN_PROMPT_CHARS, len(source) - overflow_chars)
        if next_chars >= len(source):
            return False
        message["content"] = truncate_with_notice(source, next_chars, PROMPT_TRUNCATION_NOTICE)
        return True

    for part in content:
        if part["type"] != "text":
            continue
        source = strip_trailing_notice(part["text"], PROMPT_TRUNCATION_NOTICE)  # type: ignore[typeddict-item]
        next_chars = max(MIN_PROMPT_CHARS, len(source) - overflow_chars)
        if next_chars < len(source):
            part["text"] = truncate_with_notice(  # type: ignore[typeddict-unknown-key]
                source, next_chars, PROMPT_TRUNCATION_NOTICE
            )
            return True
        break

    for index in range(len(content) - 1, -1, -1):
        if content[index]["type"] == "image_url":
            del content[index]
            if not content:
                content.append({"type": "text", "text": PROMPT_TRUNCATION_NOTICE})
            return True
    return False


def _trim_user_until_fits(
    messages: list[ChatMessage], user_index: int, estimated: int, soft_limit: int
) -> int:
    passes = 0
    while estimated > soft_limit and user_index >= 0 and passes < PROMPT_TRIM_PASSES:
        passes += 1
        if not _trim_user_message(messages[user_index], estimated - soft_limit):
            break
        estimated = estimate_conversation_tokens(messages)
    return estimated


def _fallback_messages(messages: list[ChatMessage], last_user_index: int) -> list[ChatMessage]:
    fallback = [
        message
        for index, message in enumerate(messages)
        if message["role"] == "system" or index == last_user_index
    ]
    if fallback:
        return fallback
    return messages[-1:]


def apply_model_input_token_cap(
    messages: Sequence[ChatMessage],
    model_name: str,
    input_token_cap: int | str | None = None,
) -> InputCapResult:
    """Reduce ``messages`` until their estimate fits the model's soft limit.

    Args:
        messages: Outgoing conversation; left untouched
        model_name: Model used to look up the input-token limit
        input_token_cap: Optional user override of the model limit

    Returns:
        InputCapResult with a copy of the messages. ``capped`` is False and
        the copy equals the input when nothing had to change.
    """
    limit_tokens = normalize_input_token_cap(
        input_token_cap, get_model_input_token_limit(model_name)
    )
    soft_limit = max(MIN_SOFT_LIMIT_TOKENS, int(limit_tokens * TOKEN_SAFETY_RATIO))

    working: list[ChatMessage] = copy.deepcopy(list(messages))
    estimated_before = estimate_conversation_tokens(working)
    estimated = estimated_before
    if estimated <= soft_limit:
        return InputCapResult(
            messages=working,
            capped=False,
            limit_tokens=limit_tokens,
            soft_limit_tokens=soft_limit,
            estimated_before_tokens=estimated_before,
            estimated_after_tokens=estimated,
        )

    # Drop history oldest first
    last_user_index = _find_last_user_index(working)
    index = 0
    while index < len(working) and estimated > soft_limit:
        if index == last_user_index or working[index]["role"] == "system":
            index += 1
            continue
        del working[index]
        if last_user_index >= 0 and index < last_user_index:
            last_user_index -= 1
        estimated = estimate_conversation_tokens(working)

    passes = 0
    while estimated > soft_limit and passes < CONTEXT_TRIM_PASSES:
        passes += 1
        context_index = _find_context_index(working)
        if context_index < 0:
            break
        if not _trim_context_message(working[context_index], estimated - soft_limit):
            del working[context_index]
            if last_user_index >= 0 and context_index < last_user_index:
                last_user_index -= 1
        estimated = estimate_conversation_tokens(working)

    estimated = _trim_user_until_fits(working, last_user_index, estimated, soft_limit)

    if estimated > soft_limit:
        logger.warning(
            f"Conversation still over {soft_limit} tokens after trimming, "
            f"keeping only system messages and the latest prompt"
        )
        working = _fallback_messages(working, last_user_index)
        estimated = estimate_conversation_tokens(working)
        estimated = _trim_user_until_fits(
            working, _find_last_user_index(working), estimated, soft_limit
        )

    logger.info(
        f"Capped input for {model_name or 'unknown model'}: "
        f"{estimated_before} -> {estimated} tokens (soft limit {soft_limit})"
    )
    return InputCapResult(
        messages=working,
        capped=True,
        limit_tokens=limit_tokens,
        soft_limit_tokens=soft_limit,
        estimated_before_tokens=estimated_before,
        estimated_after_tokens=estimated,
    )
