"""Utilities for OpenAI-compatible API endpoint handling."""

import re

EMBEDDINGS_PATH = "/v1/embeddings"

_CHAT_SUFFIX = "/chat/completions"
_RESPONSES_SUFFIX = "/responses"
_EMBEDDINGS_SUFFIX = "/embeddings"
_VERSION_SEGMENT = re.compile(r"/v\d+(?:beta)?\b")


def is_official_openai_endpoint(base_url: str | None) -> bool:
    """
    Determine if a base URL points to the official OpenAI API.

    Args:
        base_url: The base URL to check, or None for default OpenAI endpoint

    Returns:
        True if this is an official OpenAI endpoint requiring API key authentication
    """
    if not base_url:
        # No base_url means default OpenAI endpoint
        return True

    return base_url.startswith("https://api.openai.com") and (
        base_url == "https://api.openai.com"
        or base_url.startswith("https://api.openai.com/")
    )


def resolve_embeddings_endpoint(base_or_url: str | None) -> str:
    """
    Resolve the embeddings URL for a user-supplied API base.

    Users paste either a bare host, a versioned base, or the full URL of a
    sibling endpoint. All of these are mapped onto ``.../embeddings``:

    - ``https://host/v1/embeddings`` is kept as-is
    - ``.../chat/completions`` and ``.../responses`` suffixes are replaced
    - a base with a version segment (``/v1``, ``/v1beta``) gets ``/embeddings``
    - any other base gets ``/v1/embeddings``

    Args:
        base_or_url: API base or endpoint URL, or None

    Returns:
        Embeddings endpoint URL, or "" when no base was given
    """
    cleaned = (base_or_url or "").strip()
    if cleaned.endswith("/"):
        cleaned = cleaned[:-1]
    if not cleaned:
        return ""

    if cleaned.endswith(_EMBEDDINGS_SUFFIX):
        return cleaned
    if cleaned.endswith(_CHAT_SUFFIX):
        return cleaned[: -len(_CHAT_SUFFIX)] + _EMBEDDINGS_SUFFIX
    if cleaned.endswith(_RESPONSES_SUFFIX):
        return cleaned[: -len(_RESPONSES_SUFFIX)] + _EMBEDDINGS_SUFFIX

    if _VERSION_SEGMENT.search(cleaned):
        return f"{cleaned}{_EMBEDDINGS_SUFFIX}"
    return f"{cleaned}{EMBEDDINGS_PATH}"


def build_request_headers(api_key: str | None) -> dict[str, str]:
    """Build JSON request headers, adding Bearer auth when a key is set."""
    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers
