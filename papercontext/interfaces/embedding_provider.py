"""EmbeddingProvider protocol - interface for embedding backends used by retrieval."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Abstract protocol for embedding providers.

    Implementations may raise any exception from ``embed``; the retrieval
    core treats a raise as "embeddings unavailable" and scores lexically.
    """

    @property
    def name(self) -> str:
        """Provider name."""
        ...

    @property
    def model(self) -> str:
        """Embedding model name."""
        ...

    @property
    def batch_size(self) -> int:
        """Maximum texts per request."""
        ...

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Return one vector per input text, in input order."""
        ...
