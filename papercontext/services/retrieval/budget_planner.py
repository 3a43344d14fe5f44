"""Context budget planning.

Works out how many tokens are left for document context once the model's
input ceiling has been reduced by a safety margin, the output and reasoning
reserves, and the input already spent on prompt, system prompt, history and
images.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from loguru import logger

from papercontext.core.config.retrieval_config import RetrievalConfig
from papercontext.core.constants import (
    MAX_OUTPUT_RESERVE_TOKENS,
    MIN_OUTPUT_RESERVE_TOKENS,
    MIN_SOFT_LIMIT_TOKENS,
    REASONING_RESERVE_TOKENS,
    TOKEN_SAFETY_RATIO,
)
from papercontext.core.models import ContextBudget, ReasoningConfig
from papercontext.core.utils.model_limits import get_model_input_token_limit
from papercontext.core.utils.normalization import (
    normalize_input_token_cap,
    normalize_max_tokens,
)
from papercontext.core.utils.token_utils import (
    estimate_conversation_tokens,
    estimate_image_tokens,
)


def resolve_output_reserve(max_tokens: int | str | None) -> int:
    """Requested output tokens, clamped to [512, 8192]."""
    requested = normalize_max_tokens(max_tokens)
    return min(MAX_OUTPUT_RESERVE_TOKENS, max(MIN_OUTPUT_RESERVE_TOKENS, requested))


def resolve_reasoning_reserve(reasoning: ReasoningConfig | str | None) -> int:
    """Hidden reasoning tokens to keep free for the given reasoning level."""
    if reasoning is None:
        level = "none"
    elif isinstance(reasoning, ReasoningConfig):
        level = reasoning.level
    else:
        level = reasoning
    level = (level or "none").strip().lower()
    return REASONING_RESERVE_TOKENS.get(level, REASONING_RESERVE_TOKENS["default"])


def _image_count(images: int | str | Sequence[Any] | None) -> int:
    if images is None:
        return 0
    if isinstance(images, int):
        return max(0, images)
    if isinstance(images, str):
        return 1 if images.strip() else 0
    return sum(1 for image in images if image)


def estimate_available_context_budget(
    model: str,
    prompt: str = "",
    history: Sequence[Mapping[str, Any]] | None = None,
    images: int | str | Sequence[Any] | None = 0,
    reasoning: ReasoningConfig | str | None = None,
    max_tokens: int | str | None = None,
    input_token_cap: int | str | None = None,
    system_prompt: str = "",
    config: RetrievalConfig | None = None,
) -> ContextBudget:
    """Compute the token budget available for document context.

    The returned ``context_budget_tokens`` is floored at the configured
    minimum and is never negative; a floored value means the request is
    already tight, not that the floor is guaranteed to fit.
    """
    config = config or RetrievalConfig()

    model_limit_tokens = get_model_input_token_limit(model)
    limit_tokens = normalize_input_token_cap(input_token_cap, model_limit_tokens)
    output_reserve_tokens = resolve_output_reserve(max_tokens)
    reasoning_reserve_tokens = resolve_reasoning_reserve(reasoning)

    base_messages: list[Mapping[str, Any]] = []
    if system_prompt:
        base_messages.append({"role": "system", "content": system_prompt})
    base_messages.append({"role": "user", "content": prompt or ""})
    base_input_tokens = (
        estimate_conversation_tokens(base_messages)
        + estimate_conversation_tokens(history)
        + estimate_image_tokens(_image_count(images))
    )

    soft_limit_tokens = max(
        MIN_SOFT_LIMIT_TOKENS,
        math.floor(limit_tokens * TOKEN_SAFETY_RATIO)
        - output_reserve_tokens
        - reasoning_reserve_tokens,
    )
    context_budget_tokens = max(
        config.min_context_budget_tokens, soft_limit_tokens - base_input_tokens
    )

    budget = ContextBudget(
        model_limit_tokens=model_limit_tokens,
        limit_tokens=limit_tokens,
        output_reserve_tokens=output_reserve_tokens,
        reasoning_reserve_tokens=reasoning_reserve_tokens,
        base_input_tokens=base_input_tokens,
        soft_limit_tokens=soft_limit_tokens,
        context_budget_tokens=context_budget_tokens,
    )
    logger.debug(
        f"Context budget for {model}: {context_budget_tokens} tokens "
        f"(limit={limit_tokens}, soft={soft_limit_tokens}, base={base_input_tokens}, "
        f"output={output_reserve_tokens}, reasoning={reasoning_reserve_tokens})"
    )
    return budget
