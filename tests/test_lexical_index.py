"""Tests for BM25 tokenization and scoring."""

import math

from papercontext.core.models import ChunkStat
from papercontext.services.lexical_index import (
    build_chunk_index,
    score_chunk_bm25,
    score_document_bm25,
    tokenize_query,
    tokenize_text,
)


class TestTokenization:
    """Term extraction."""

    def test_drops_short_terms_and_stopwords(self):
        assert tokenize_text("The GPU is fast and the CPU was slow, 42 x") == [
            "gpu",
            "fast",
            "cpu",
            "slow",
        ]

    def test_query_terms_are_deduplicated_in_order(self):
        assert tokenize_query("attention attention models and attention") == [
            "attention",
            "models",
        ]

    def test_empty_input(self):
        assert tokenize_text("") == []
        assert tokenize_query(None) == []


class TestChunkIndex:
    """Term and document frequencies."""

    def test_builds_frequencies(self):
        index = build_chunk_index(["alpha beta beta", "beta gamma"])

        assert index.doc_freq == {"alpha": 1, "beta": 2, "gamma": 1}
        assert index.chunk_stats[0].tf == {"alpha": 1, "beta": 2}
        assert index.chunk_stats[0].length == 3
        assert index.avg_chunk_length == 2.5

    def test_empty_corpus(self):
        index = build_chunk_index([])
        assert index.chunk_stats == []
        assert index.avg_chunk_length == 0.0


class TestBM25:
    """Okapi BM25 scoring."""

    def test_matches_reference_formula(self):
        """Single matching term against the closed-form expression."""
        stat = ChunkStat(index=0, length=4, tf={"graph": 2, "node": 2}, unique_terms=["graph", "node"])
        score = score_chunk_bm25(stat, ["graph"], {"graph": 1}, total_chunks=3, avg_chunk_length=4.0)

        idf = math.log(1 + (3 - 1 + 0.5) / (1 + 0.5))
        expected = idf * (2 * 2.2) / (2 + 1.2)
        assert math.isclose(score, expected)

    def test_zero_average_length_does_not_divide_by_zero(self):
        stat = ChunkStat(index=0, length=1, tf={"graph": 1}, unique_terms=["graph"])
        assert score_chunk_bm25(stat, ["graph"], {"graph": 1}, 1, 0.0) > 0

    def test_no_terms_scores_zero(self):
        stat = ChunkStat(index=0, length=0, tf={}, unique_terms=[])
        assert score_chunk_bm25(stat, ["graph"], {}, 1, 1.0) == 0.0
        index = build_chunk_index(["graph theory"])
        assert score_document_bm25(index.chunk_stats, [], index.doc_freq, 2.0) == [0.0]

    def test_relevant_chunk_scores_highest(self):
        chunks = [
            "neural networks learn representations",
            "graph neural networks aggregate neighbor features over graph edges",
            "weather report sunny",
        ]
        index = build_chunk_index(chunks)
        scores = score_document_bm25(
            index.chunk_stats, tokenize_query("graph networks"), index.doc_freq, index.avg_chunk_length
        )

        assert scores.index(max(scores)) == 1
        assert scores[2] == 0.0
