"""Embedding providers."""

from .openai_provider import OpenAICompatibleEmbeddingProvider, create_embedding_provider

__all__ = ["OpenAICompatibleEmbeddingProvider", "create_embedding_provider"]
