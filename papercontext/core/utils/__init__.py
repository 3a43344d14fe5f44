"""Core utilities package."""

from .model_limits import get_model_input_token_limit
from .normalization import normalize_input_token_cap, normalize_max_tokens
from .single_flight import SingleFlight, SingleFlightGroup
from .token_utils import (
    estimate_content_tokens,
    estimate_conversation_tokens,
    estimate_text_tokens,
)

__all__ = [
    "SingleFlight",
    "SingleFlightGroup",
    "estimate_content_tokens",
    "estimate_conversation_tokens",
    "estimate_text_tokens",
    "get_model_input_token_limit",
    "normalize_input_token_cap",
    "normalize_max_tokens",
]
