"""BM25 lexical index over one document's chunks."""

import math
import re
from collections import Counter
from dataclasses import dataclass

from papercontext.core.constants import BM25_B, BM25_K1, STOPWORDS
from papercontext.core.models import ChunkStat

_TERM_PATTERN = re.compile(r"[a-z0-9]+")
_MIN_TERM_LENGTH = 3


@dataclass
class ChunkIndex:
    """Per-chunk term statistics and document frequencies."""

    chunk_stats: list[ChunkStat]
    doc_freq: dict[str, int]
    avg_chunk_length: float


def tokenize_text(text: str | None) -> list[str]:
    """Lowercase alphanumeric terms of 3+ characters, stopwords removed."""
    if not text:
        return []
    return [
        term
        for term in _TERM_PATTERN.findall(text.lower())
        if len(term) >= _MIN_TERM_LENGTH and term not in STOPWORDS
    ]


def tokenize_query(query: str | None) -> list[str]:
    """Query terms, deduplicated in first-seen order."""
    return list(dict.fromkeys(tokenize_text(query)))


def build_chunk_index(chunks: list[str]) -> ChunkIndex:
    """Build term frequencies, document frequencies and average length."""
    doc_freq: Counter[str] = Counter()
    chunk_stats: list[ChunkStat] = []

    for index, chunk in enumerate(chunks):
        terms = tokenize_text(chunk)
        tf = Counter(terms)
        unique_terms = list(tf)
        doc_freq.update(unique_terms)
        chunk_stats.append(
            ChunkStat(index=index, length=len(terms), tf=dict(tf), unique_terms=unique_terms)
        )

    avg_chunk_length = (
        sum(stat.length for stat in chunk_stats) / len(chunk_stats) if chunk_stats else 0.0
    )
    return ChunkIndex(
        chunk_stats=chunk_stats, doc_freq=dict(doc_freq), avg_chunk_length=avg_chunk_length
    )


def score_chunk_bm25(
    chunk: ChunkStat,
    query_terms: list[str],
    doc_freq: dict[str, int],
    total_chunks: int,
    avg_chunk_length: float,
    k1: float = BM25_K1,
    b: float = BM25_B,
) -> float:
    """Okapi BM25 score of one chunk.

    Returns 0.0 when either side has no terms. A non-positive average length
    is treated as 1 so the length normalization never divides by zero.
    """
    if not query_terms or chunk.length <= 0:
        return 0.0

    avg_length = avg_chunk_length if avg_chunk_length > 0 else 1.0
    length_norm = k1 * (1 - b + b * (chunk.length / avg_length))

    score = 0.0
    for term in query_terms:
        tf = chunk.tf.get(term, 0)
        if not tf:
            continue
        df = doc_freq.get(term, 0)
        idf = math.log(1 + (total_chunks - df + 0.5) / (df + 0.5))
        score += idf * (tf * (k1 + 1)) / (tf + length_norm)
    return score


def score_document_bm25(
    chunk_stats: list[ChunkStat],
    query_terms: list[str],
    doc_freq: dict[str, int],
    avg_chunk_length: float,
) -> list[float]:
    """BM25 score of every chunk, in chunk order."""
    total = len(chunk_stats)
    return [
        score_chunk_bm25(stat, query_terms, doc_freq, total, avg_chunk_length)
        for stat in chunk_stats
    ]
