"""Hybrid BM25 + embedding scoring and per-paper candidate building.

Lexical scores are always computed. Embedding similarity is added only when
a provider is configured, the question is non-blank and both chunk and query
embeddings succeed; otherwise the paper is scored lexically. Which mode was
used is reported through the tagged ``RetrievalResult``.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from loguru import logger

from papercontext.core.config.retrieval_config import RetrievalConfig
from papercontext.core.models import (
    DocumentContext,
    HybridRetrieval,
    LexicalRetrieval,
    NoCandidates,
    PaperRef,
    RetrievalResult,
    ScoredCandidate,
)
from papercontext.core.utils.token_utils import estimate_text_tokens
from papercontext.interfaces.embedding_provider import EmbeddingProvider
from papercontext.services.embedding_cache import ensure_embeddings
from papercontext.services.lexical_index import score_document_bm25, tokenize_query


def normalize_scores(values: Sequence[float]) -> list[float]:
    """Min-max normalize to [0, 1].

    Empty input gives []. A zero-variance set (including a single value)
    maps to all zeros.
    """
    if not values:
        return []
    low = min(values)
    high = max(values)
    if high == low:
        return [0.0] * len(values)
    span = high - low
    return [(value - low) / span for value in values]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0.0 for empty, mismatched or zero-norm vectors."""
    if len(a) == 0 or len(a) != len(b):
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0 or not np.isfinite(norm):
        return 0.0
    return float(np.dot(va, vb) / norm)


async def _embedding_scores(
    document: DocumentContext,
    question: str,
    provider: EmbeddingProvider | None,
    config: RetrievalConfig,
) -> tuple[list[float] | None, str]:
    """Cosine similarity per chunk, or (None, reason) when unavailable."""
    if provider is None:
        return None, "embeddings not configured"
    if not question.strip():
        return None, "empty question"

    ready = await ensure_embeddings(document, provider, config.embedding_batch_size)
    if not ready or document.embeddings is None:
        return None, "chunk embeddings unavailable"

    try:
        query_vectors = await provider.embed([question])
    except Exception as e:
        logger.warning(f"Query embedding failed, using lexical scores: {e}")
        return None, "query embedding failed"

    query_vector = query_vectors[0] if query_vectors else []
    if not query_vector:
        return None, "query embedding failed"

    return [cosine_similarity(query_vector, vector) for vector in document.embeddings], ""


async def retrieve_paper_candidates(
    paper: PaperRef,
    document: DocumentContext | None,
    question: str,
    provider: EmbeddingProvider | None = None,
    top_k: int | None = None,
    config: RetrievalConfig | None = None,
) -> RetrievalResult:
    """Score one paper's chunks and return its top-K candidates.

    Never raises for missing credentials or embedding failures; those
    produce a ``LexicalRetrieval`` result instead.
    """
    config = config or RetrievalConfig()
    limit = config.top_k_per_paper if top_k is None else max(0, top_k)

    if document is None or not document.chunks:
        return NoCandidates(reason="no extractable text")

    question = question or ""
    terms = tokenize_query(question)
    bm25_scores = score_document_bm25(
        document.chunk_stats, terms, document.doc_freq, document.avg_chunk_length
    )
    bm25_norm = normalize_scores(bm25_scores)

    embed_scores, fallback_reason = await _embedding_scores(
        document, question, provider, config
    )
    embed_norm = normalize_scores(embed_scores) if embed_scores is not None else None

    if embed_norm is not None:
        bm25_weight = config.hybrid_weight_bm25
        embed_weight = config.hybrid_weight_embedding
    else:
        bm25_weight, embed_weight = 1.0, 0.0

    candidates: list[ScoredCandidate] = []
    for position, stat in enumerate(document.chunk_stats):
        text = document.chunks[stat.index]
        hybrid = bm25_norm[position] * bm25_weight
        if embed_norm is not None:
            hybrid += embed_norm[position] * embed_weight
        candidates.append(
            ScoredCandidate(
                paper_key=paper.key,
                owner_id=paper.owner_id,
                content_item_id=paper.content_item_id,
                title=paper.title or document.title,
                chunk_index=stat.index,
                chunk_text=text,
                estimated_tokens=max(1, estimate_text_tokens(text)),
                bm25_score=bm25_scores[position],
                embedding_score=embed_scores[position] if embed_scores is not None else 0.0,
                hybrid_score=hybrid,
            )
        )

    candidates.sort(key=lambda c: (-c.hybrid_score, c.chunk_index))
    candidates = candidates[:limit]

    logger.debug(
        f"Paper {paper.key}: {len(candidates)}/{len(document.chunks)} candidates "
        f"({'hybrid' if embed_norm is not None else 'lexical'}, {len(terms)} query terms)"
    )
    if embed_norm is not None:
        return HybridRetrieval(candidates=candidates)
    return LexicalRetrieval(candidates=candidates, reason=fallback_reason)


async def build_paper_retrieval_candidates(
    paper: PaperRef,
    document: DocumentContext | None,
    question: str,
    provider: EmbeddingProvider | None = None,
    top_k: int | None = None,
    config: RetrievalConfig | None = None,
) -> list[ScoredCandidate]:
    """Top-K scored candidates of one paper, best first."""
    result = await retrieve_paper_candidates(
        paper, document, question, provider=provider, top_k=top_k, config=config
    )
    return result.candidates
