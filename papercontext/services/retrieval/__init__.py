"""Hybrid retrieval, budget planning, packing and rendering."""

from .budget_planner import estimate_available_context_budget
from .hybrid_scorer import (
    build_paper_retrieval_candidates,
    cosine_similarity,
    normalize_scores,
    retrieve_paper_candidates,
)
from .packer import assemble_retrieved_multi_paper_context
from .paper_selection import rank_unpinned_papers_by_question
from .planner import (
    build_min_chunk_map,
    resolve_multi_context_plan,
    resolve_planner_papers,
    select_context_assembly_mode,
)
from .rendering import (
    assemble_full_multi_paper_context,
    build_full_paper_context,
    build_metadata_only_fallback,
    render_evidence_pack,
)

__all__ = [
    "assemble_full_multi_paper_context",
    "assemble_retrieved_multi_paper_context",
    "build_full_paper_context",
    "build_metadata_only_fallback",
    "build_min_chunk_map",
    "build_paper_retrieval_candidates",
    "cosine_similarity",
    "estimate_available_context_budget",
    "normalize_scores",
    "rank_unpinned_papers_by_question",
    "render_evidence_pack",
    "resolve_multi_context_plan",
    "resolve_planner_papers",
    "retrieve_paper_candidates",
    "select_context_assembly_mode",
]
