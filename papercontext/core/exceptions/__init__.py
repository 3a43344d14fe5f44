"""Exceptions raised by papercontext providers."""

from .embedding import (
    ConfigurationError,
    EmbeddingBatchError,
    EmbeddingDimensionError,
    EmbeddingProviderError,
)

__all__ = [
    "ConfigurationError",
    "EmbeddingBatchError",
    "EmbeddingDimensionError",
    "EmbeddingProviderError",
]
