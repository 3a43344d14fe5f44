"""Normalization helpers for user-supplied token settings.

Values arrive as ints from code and as strings from preference storage, so
both are accepted.
"""

import math

from papercontext.core.constants import (
    DEFAULT_INPUT_TOKEN_CAP,
    DEFAULT_MAX_TOKENS,
    MAX_ALLOWED_INPUT_TOKEN_CAP,
    MAX_ALLOWED_TOKENS,
)


def _parse_int(value: int | float | str | None) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        sign = ""
        if text and text[0] in "+-":
            sign, text = text[0], text[1:]
        digits = ""
        for ch in text:
            if not ch.isdigit():
                break
            digits += ch
        return int(sign + digits) if digits else None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return math.floor(number)


def normalize_max_tokens(value: int | float | str | None = None) -> int:
    """Clamp a max-tokens value to [1, MAX_ALLOWED_TOKENS].

    Missing or invalid values fall back to DEFAULT_MAX_TOKENS.
    """
    parsed = _parse_int(value)
    if parsed is None or parsed < 1:
        return DEFAULT_MAX_TOKENS
    return min(parsed, MAX_ALLOWED_TOKENS)


def normalize_input_token_cap(
    value: int | float | str | None = None,
    fallback: int = DEFAULT_INPUT_TOKEN_CAP,
) -> int:
    """Clamp an input-token cap to [1, MAX_ALLOWED_INPUT_TOKEN_CAP].

    An explicit positive value wins over ``fallback`` (the model limit);
    missing or invalid values return the normalized fallback.
    """
    parsed_fallback = _parse_int(fallback)
    if parsed_fallback is not None and parsed_fallback >= 1:
        normalized_fallback = min(parsed_fallback, MAX_ALLOWED_INPUT_TOKEN_CAP)
    else:
        normalized_fallback = DEFAULT_INPUT_TOKEN_CAP

    parsed = _parse_int(value)
    if parsed is None or parsed < 1:
        return normalized_fallback
    return min(parsed, MAX_ALLOWED_INPUT_TOKEN_CAP)
