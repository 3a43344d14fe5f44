"""Embedding provider exceptions.

These are raised by the concrete embedding providers. The retrieval core
catches them at the embedding cache boundary and degrades to lexical-only
scoring, so callers of the planner never see them.
"""


class EmbeddingProviderError(Exception):
    """Base exception for embedding provider errors."""

    pass


class EmbeddingDimensionError(EmbeddingProviderError):
    """Raised when embedding dimensions are inconsistent.

    This occurs when:
    - Vectors in one response have different lengths
    - A query vector does not match the dimension of the cached chunk vectors
    """

    pass


class EmbeddingBatchError(EmbeddingProviderError):
    """Raised when an embedding batch response is malformed.

    This occurs when:
    - The API returns fewer or more vectors than inputs
    - A response row is missing its ``embedding`` field
    """

    pass


class ConfigurationError(EmbeddingProviderError):
    """Raised for embedding configuration errors.

    This occurs when:
    - A provider is constructed without an API key or base URL
    - batch_size or timeout is not positive
    """

    pass

