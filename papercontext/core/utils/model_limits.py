"""Model name to input-token limit table.

Rules are checked in order and the first match wins, so more specific
patterns sit above their families. Names are matched lower-cased, both as
given and with any ``provider/`` prefix removed. Supporting a new model
means adding a rule here.
"""

import re
from typing import NamedTuple

from papercontext.core.constants import DEFAULT_INPUT_TOKEN_CAP

DEFAULT_MODEL_INPUT_TOKEN_LIMIT = DEFAULT_INPUT_TOKEN_CAP


class ModelInputLimitRule(NamedTuple):
    pattern: re.Pattern[str]
    limit: int


def _rule(prefix: str, limit: int) -> ModelInputLimitRule:
    return ModelInputLimitRule(re.compile(rf"^{prefix}(?:[.-]|$)"), limit)


MODEL_INPUT_LIMIT_RULES: tuple[ModelInputLimitRule, ...] = (
    # Qwen
    _rule(r"qwen-long", 10_000_000),
    _rule(r"qwen-turbo", 1_000_000),
    _rule(r"qwen-max(?:-latest)?", 129_024),
    # Gemini
    _rule(r"gemini-2[.-]?5", 1_048_576),
    _rule(r"gemini-3", 1_000_000),
    _rule(r"gemini-1[.-]?5", 1_000_000),
    # OpenAI
    _rule(r"gpt-4[.-]?1", 1_047_576),
    _rule(r"gpt-5", 400_000),
    _rule(r"o(?:3|1(?:-pro)?)", 200_000),
    _rule(r"gpt-4o", 128_000),
    # Anthropic
    _rule(r"claude", 200_000),
    # xAI
    _rule(r"grok-(?:4[.-]?1-fast|4-fast)", 2_000_000),
    _rule(r"grok-code-fast-1", 256_000),
    _rule(r"grok-4", 256_000),
    _rule(r"grok-3", 131_072),
    # Cohere
    _rule(r"command-a(?:-reasoning)?", 256_000),
    _rule(r"command-r(?:\+|-plus)?", 128_000),
    # Mistral
    _rule(r"mistral-large-3", 256_000),
    _rule(r"ministral-3(?:-14b)?", 256_000),
    _rule(r"mistral-medium-3", 128_000),
    _rule(r"mistral-small-3", 128_000),
    _rule(r"codestral", 128_000),
    # DeepSeek
    _rule(r"deepseek-(?:chat|reasoner)", 128_000),
    _rule(r"deepseek", 128_000),
)


def get_model_input_token_limit(model_name: str | None) -> int:
    """Resolve the input-token ceiling for a model name."""
    normalized = (model_name or "").strip().lower()
    if not normalized:
        return DEFAULT_MODEL_INPUT_TOKEN_LIMIT

    tail = normalized.rsplit("/", 1)[-1]
    candidates = [normalized, tail] if tail and tail != normalized else [normalized]
    for rule in MODEL_INPUT_LIMIT_RULES:
        for candidate in candidates:
            if rule.pattern.search(candidate):
                return rule.limit
    return DEFAULT_MODEL_INPUT_TOKEN_LIMIT
