"""Document context construction and the per-session document cache.

``build_document_context`` turns extracted text into chunks plus a BM25
index. ``DocumentContextCache`` is owned by the caller (one per chat
session): it memoizes contexts by document key, shares concurrent loads of
the same document, and is invalidated explicitly when content changes.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from loguru import logger

from papercontext.core.config.retrieval_config import RetrievalConfig
from papercontext.core.models import DocumentContext, DocumentKey
from papercontext.core.utils.single_flight import SingleFlightGroup
from papercontext.parsers.chunk_splitter import ChunkSplitter, ChunkSplitterConfig
from papercontext.services.lexical_index import build_chunk_index

TextLoader = Callable[[], Awaitable[str | None]]


def build_document_context(
    title: str, text: str | None, config: RetrievalConfig | None = None
) -> DocumentContext:
    """Chunk and index extracted text. Empty text yields an empty context."""
    config = config or RetrievalConfig()
    splitter = ChunkSplitter(
        ChunkSplitterConfig(
            target_length=config.chunk_target_length, overlap=config.chunk_overlap
        )
    )
    chunks = splitter.split(text)
    if not chunks:
        return DocumentContext.empty(title)

    index = build_chunk_index(chunks)
    return DocumentContext(
        title=title,
        chunks=chunks,
        chunk_stats=index.chunk_stats,
        doc_freq=index.doc_freq,
        avg_chunk_length=index.avg_chunk_length,
        full_length=len("\n\n".join(chunks)),
    )


class DocumentContextCache:
    """Per-session cache of document contexts keyed by document key."""

    def __init__(self, config: RetrievalConfig | None = None):
        self._config = config or RetrievalConfig()
        self._contexts: dict[DocumentKey, DocumentContext] = {}
        self._loads: SingleFlightGroup[DocumentContext] = SingleFlightGroup()
        self._generations: dict[DocumentKey, int] = {}
        self._epoch = 0

    def __contains__(self, key: object) -> bool:
        return key in self._contexts

    def __len__(self) -> int:
        return len(self._contexts)

    def get(self, key: DocumentKey) -> DocumentContext | None:
        return self._contexts.get(key)

    def _generation(self, key: DocumentKey) -> tuple[int, int]:
        return self._epoch, self._generations.get(key, 0)

    def put(self, key: DocumentKey, context: DocumentContext) -> None:
        self._contexts[key] = context

    async def get_or_load(
        self, key: DocumentKey, title: str, loader: TextLoader
    ) -> DocumentContext:
        """Return the cached context, extracting text at most once.

        Concurrent calls for the same key share one ``loader`` call. A loader
        failure is logged and cached as an empty context; call
        ``invalidate`` to retry extraction. A load that was running when its
        key was invalidated is not cached, and later calls start a new load.
        """
        cached = self._contexts.get(key)
        if cached is not None:
            return cached

        generation = self._generation(key)

        async def load() -> DocumentContext:
            try:
                text = await loader()
            except Exception as e:
                logger.warning(f"Text extraction failed for document {key}: {e}")
                text = None
            context = build_document_context(title, text, self._config)
            if self._generation(key) != generation:
                logger.debug(f"Discarding stale load of document {key}")
                return context
            self._contexts[key] = context
            logger.debug(
                f"Loaded document {key}: {len(context.chunks)} chunks, "
                f"{context.full_length} chars"
            )
            return context

        return await self._loads.run((key, generation), load)

    def invalidate(self, key: DocumentKey) -> bool:
        """Drop one document, e.g. after its content changed."""
        self._generations[key] = self._generations.get(key, 0) + 1
        return self._contexts.pop(key, None) is not None

    def clear(self) -> None:
        self._epoch += 1
        self._generations.clear()
        self._contexts.clear()
