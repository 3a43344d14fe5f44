"""Multi-paper evidence packing under a token budget.

Selection runs in two passes over a globally normalized candidate pool:

1. Coverage: every paper first gets its top ``N`` fitting chunks, where ``N``
   is larger for the active paper, so one strong paper cannot starve the
   others.
2. MMR: the remaining budget is filled greedily with the candidate that
   maximizes ``(lambda * relevance - (1 - lambda) * max_similarity) / tokens``,
   where similarity is Jaccard overlap with already selected chunks.

A candidate is only taken if its estimated tokens fit the remaining budget,
so the budget is never exceeded.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Mapping, Sequence

from loguru import logger

from papercontext.core.config.retrieval_config import RetrievalConfig
from papercontext.core.constants import DIVERSITY_TOKEN_LIMIT
from papercontext.core.models import (
    DocumentKey,
    PlannerPaper,
    RetrievalResult,
    RetrievedAssembly,
    ScoredCandidate,
)
from papercontext.interfaces.embedding_provider import EmbeddingProvider
from papercontext.services.retrieval.hybrid_scorer import (
    normalize_scores,
    retrieve_paper_candidates,
)
from papercontext.services.retrieval.rendering import (
    build_metadata_only_fallback,
    render_evidence_pack,
)

_DIVERSITY_TOKEN = re.compile(r"[a-z0-9]{3,}")

SelectionKey = tuple[DocumentKey, int]


def diversity_signature(text: str) -> frozenset[str]:
    """Set of the first 256 lowercase alphanumeric tokens (3+ chars)."""
    tokens = _DIVERSITY_TOKEN.findall(text.lower())[:DIVERSITY_TOKEN_LIMIT]
    return frozenset(tokens)


def jaccard_similarity(a: frozenset[str], b: frozenset[str]) -> float:
    if not a or not b:
        return 0.0
    intersection = len(a & b)
    union = len(a) + len(b) - intersection
    return intersection / union if union else 0.0


def _unique_papers(papers: Sequence[PlannerPaper]) -> list[PlannerPaper]:
    seen: set[DocumentKey] = set()
    unique = []
    for entry in papers:
        if entry.key in seen:
            continue
        seen.add(entry.key)
        unique.append(entry)
    return unique


def _coverage_floors(
    papers: Sequence[PlannerPaper],
    active_paper_key: DocumentKey | None,
    min_chunks_by_paper: Mapping[DocumentKey, int] | None,
    config: RetrievalConfig,
) -> dict[DocumentKey, int]:
    if min_chunks_by_paper is not None:
        return {entry.key: max(0, min_chunks_by_paper.get(entry.key, 0)) for entry in papers}
    floors = {}
    for entry in papers:
        is_active = entry.key == active_paper_key if active_paper_key else entry.is_active
        floors[entry.key] = config.min_chunks_for(is_active)
    return floors


class _Selection:
    """Packer-local selection state."""

    def __init__(self, budget: int):
        self.remaining = budget
        self.chosen: dict[SelectionKey, ScoredCandidate] = {}

    def __contains__(self, key: SelectionKey) -> bool:
        return key in self.chosen

    def add(self, candidate: ScoredCandidate) -> bool:
        key = candidate.selection_key
        if key in self.chosen or candidate.estimated_tokens > self.remaining:
            return False
        self.chosen[key] = candidate
        self.remaining -= candidate.estimated_tokens
        return True


async def assemble_retrieved_multi_paper_context(
    papers: Sequence[PlannerPaper],
    question: str,
    context_budget_tokens: int,
    active_paper_key: DocumentKey | None = None,
    min_chunks_by_paper: Mapping[DocumentKey, int] | None = None,
    embedding_provider: EmbeddingProvider | None = None,
    config: RetrievalConfig | None = None,
) -> RetrievedAssembly:
    """Select and render a token-bounded evidence pack across papers.

    Args:
        papers: Papers in display order (their position sets the P labels)
        question: User question used for scoring
        context_budget_tokens: Hard token budget for selected chunks
        active_paper_key: Paper the user is viewing; defaults to the entry
            flagged ``is_active``
        min_chunks_by_paper: Explicit coverage floors; papers missing from
            the map get no floor. When omitted, the configured active/other
            floors apply.
        embedding_provider: Optional provider enabling hybrid scoring
        config: Retrieval tunables

    Returns:
        The rendered context and selection accounting. With no candidates at
        all the context is a metadata-only block per paper.
    """
    config = config or RetrievalConfig()
    papers = _unique_papers(papers)
    if not papers or context_budget_tokens <= 0:
        return RetrievedAssembly()

    results: list[RetrievalResult] = await asyncio.gather(
        *(
            retrieve_paper_candidates(
                entry.paper,
                entry.document,
                question,
                provider=embedding_provider,
                top_k=config.top_k_per_paper,
                config=config,
            )
            for entry in papers
        )
    )
    retrieval_modes = {entry.key: result.mode for entry, result in zip(papers, results)}

    pool: list[ScoredCandidate] = [c for result in results for c in result.candidates]
    paper_refs = [entry.paper for entry in papers]
    if not pool:
        logger.info(f"No retrievable chunks across {len(papers)} papers, using metadata only")
        return RetrievedAssembly(
            context_text=build_metadata_only_fallback(paper_refs),
            selected_chunk_count=0,
            selected_paper_count=len(papers),
            retrieval_modes=retrieval_modes,
        )

    # Global normalization makes relevance comparable across papers
    global_scores = normalize_scores([c.hybrid_score for c in pool])
    relevance: dict[SelectionKey, float] = {
        c.selection_key: score for c, score in zip(pool, global_scores)
    }

    by_paper: dict[DocumentKey, list[ScoredCandidate]] = {}
    for candidate in pool:
        by_paper.setdefault(candidate.paper_key, []).append(candidate)
    for candidates in by_paper.values():
        candidates.sort(key=lambda c: (-relevance[c.selection_key], c.chunk_index))

    selection = _Selection(context_budget_tokens)

    floors = _coverage_floors(papers, active_paper_key, min_chunks_by_paper, config)
    for entry in papers:
        floor = floors.get(entry.key, 0)
        added = 0
        for candidate in by_paper.get(entry.key, []):
            if added >= floor:
                break
            if selection.add(candidate):
                added += 1

    signatures = {c.selection_key: diversity_signature(c.chunk_text) for c in pool}
    lam = config.mmr_lambda
    while selection.remaining > 0:
        best: ScoredCandidate | None = None
        best_utility = float("-inf")
        for candidate in pool:
            key = candidate.selection_key
            if key in selection or candidate.estimated_tokens > selection.remaining:
                continue
            signature = signatures[key]
            max_similarity = max(
                (jaccard_similarity(signature, signatures[chosen]) for chosen in selection.chosen),
                default=0.0,
            )
            marginal = lam * relevance[key] - (1 - lam) * max_similarity
            utility = marginal / max(1, candidate.estimated_tokens)
            if utility > best_utility:
                best_utility = utility
                best = candidate
        if best is None or not selection.add(best):
            break

    selected = sorted(selection.chosen.values(), key=lambda c: (c.paper_key, c.chunk_index))
    context_text = render_evidence_pack(paper_refs, selected) or build_metadata_only_fallback(
        paper_refs
    )
    selected_paper_count = len({c.paper_key for c in selected}) if selected else len(papers)

    assembly = RetrievedAssembly(
        context_text=context_text,
        selected_chunk_count=len(selected),
        selected_paper_count=selected_paper_count,
        selected=selected,
        retrieval_modes=retrieval_modes,
    )
    logger.info(
        f"Packed {len(selected)} chunks from {selected_paper_count} papers "
        f"using {assembly.used_tokens}/{context_budget_tokens} tokens"
    )
    return assembly
