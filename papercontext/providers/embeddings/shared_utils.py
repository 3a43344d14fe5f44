"""Shared utilities for embedding providers."""

from typing import Any

from loguru import logger

from papercontext.core.exceptions import EmbeddingBatchError

EMPTY_TEXT_PLACEHOLDER = " "


def validate_text_input(texts: list[str]) -> list[str]:
    """Validate texts before embedding.

    Output keeps one entry per input so vectors stay aligned with chunk
    indices; blank texts are replaced by a placeholder instead of dropped.
    """
    if not texts:
        return []

    validated = []
    for i, text in enumerate(texts):
        if not isinstance(text, str):
            raise ValueError(f"Text must be string, got {type(text)}")
        if not text.strip():
            logger.warning(f"Empty text at index {i}, using placeholder")
            validated.append(EMPTY_TEXT_PLACEHOLDER)
            continue
        validated.append(text)

    return validated


def get_usage_stats_dict(
    requests_made: int, tokens_used: int, embeddings_generated: int
) -> dict[str, Any]:
    """Get standardized usage statistics dictionary."""
    return {
        "requests_made": requests_made,
        "tokens_used": tokens_used,
        "embeddings_generated": embeddings_generated,
    }


def parse_embedding_response(payload: Any, expected: int) -> list[list[float]]:
    """Extract ``data[].embedding`` vectors from an OpenAI-style response.

    Rows are ordered by their ``index`` field when present.

    Raises:
        EmbeddingBatchError: If the payload is malformed or the row count differs
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list):
        raise EmbeddingBatchError("Embedding response has no 'data' list")

    rows = sorted(
        enumerate(data),
        key=lambda pair: pair[1].get("index", pair[0]) if isinstance(pair[1], dict) else pair[0],
    )
    vectors: list[list[float]] = []
    for _, row in rows:
        embedding = row.get("embedding") if isinstance(row, dict) else None
        if not isinstance(embedding, list):
            raise EmbeddingBatchError("Embedding response row is missing 'embedding'")
        vectors.append([float(x) for x in embedding])

    if len(vectors) != expected:
        raise EmbeddingBatchError(f"Expected {expected} embeddings, got {len(vectors)}")
    return vectors
