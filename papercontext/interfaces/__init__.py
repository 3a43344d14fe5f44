"""Collaborator protocols."""

from .embedding_provider import EmbeddingProvider

__all__ = ["EmbeddingProvider"]
