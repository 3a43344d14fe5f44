"""Lazy, single-flight chunk embeddings for a document context."""

from loguru import logger

from papercontext.core.constants import EMBEDDING_BATCH_SIZE
from papercontext.core.exceptions import EmbeddingBatchError
from papercontext.core.models import DocumentContext
from papercontext.interfaces.embedding_provider import EmbeddingProvider


async def ensure_embeddings(
    document: DocumentContext | None,
    provider: EmbeddingProvider | None,
    batch_size: int = EMBEDDING_BATCH_SIZE,
) -> bool:
    """Make sure every chunk of ``document`` has an embedding.

    Returns True when usable embeddings exist afterwards. Concurrent callers
    for the same document share one computation. A failure is recorded on the
    document and never retried for that instance; it is reported as False,
    never raised.
    """
    if document is None or not document.chunks or provider is None:
        return False
    if document.embeddings is not None:
        return document.has_usable_embeddings
    if document.embedding_failed:
        return False

    async def compute() -> bool:
        # A computation that finished while this caller was scheduled
        if document.embeddings is not None:
            return document.has_usable_embeddings
        if document.embedding_failed:
            return False
        return await _compute_embeddings(document, provider, batch_size)

    return await document.embedding_flight.run(compute)


async def _compute_embeddings(
    document: DocumentContext, provider: EmbeddingProvider, batch_size: int
) -> bool:
    step = max(1, batch_size)
    vectors: list[list[float]] = []
    try:
        for start in range(0, len(document.chunks), step):
            batch = document.chunks[start : start + step]
            batch_vectors = await provider.embed(batch)
            if len(batch_vectors) != len(batch):
                raise EmbeddingBatchError(
                    f"Expected {len(batch)} embeddings, got {len(batch_vectors)}"
                )
            vectors.extend(batch_vectors)
    except Exception as e:
        logger.warning(
            f"Embedding failed for '{document.title}' ({len(document.chunks)} chunks), "
            f"continuing with lexical retrieval: {e}"
        )
        document.embeddings = None
        document.embedding_failed = True
        return False

    document.embeddings = vectors
    logger.debug(f"Cached {len(vectors)} chunk embeddings for '{document.title}'")
    return True
