"""Assembly-mode selection and the multi-paper context planner.

For each request the planner computes a context budget, then either sends
the full text of the pinned papers (when it fits) or a retrieval-packed
evidence pack. Unpinned papers only take part when the question appears to
be about them.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Literal

from loguru import logger

from papercontext.core.config.retrieval_config import RetrievalConfig
from papercontext.core.constants import SEMANTIC_DEGRADED_NOTE
from papercontext.core.models import (
    AssemblyMode,
    DocumentKey,
    MultiContextPlan,
    PaperRef,
    PinKind,
    PlannerPaper,
    ReasoningConfig,
    RetrievedAssembly,
)
from papercontext.core.utils.token_utils import estimate_text_tokens
from papercontext.interfaces.embedding_provider import EmbeddingProvider
from papercontext.services.document_context import DocumentContextCache
from papercontext.services.retrieval.budget_planner import (
    estimate_available_context_budget,
)
from papercontext.services.retrieval.packer import (
    assemble_retrieved_multi_paper_context,
)
from papercontext.services.retrieval.paper_selection import (
    rank_unpinned_papers_by_question,
)
from papercontext.services.retrieval.rendering import (
    append_context_blocks,
    assemble_full_multi_paper_context,
)

ConversationMode = Literal["paper", "open"]
PaperTextLoader = Callable[[PaperRef], Awaitable[str | None]]


def select_context_assembly_mode(
    full_context_text: str, full_context_tokens: int, context_budget_tokens: int
) -> AssemblyMode:
    """"full" iff there is full text and it fits the budget, else "retrieval"."""
    if not full_context_text.strip():
        return "retrieval"
    return "full" if full_context_tokens <= context_budget_tokens else "retrieval"


def build_min_chunk_map(
    papers: Sequence[PlannerPaper], config: RetrievalConfig | None = None
) -> dict[DocumentKey, int]:
    """Coverage floors by pin kind: unpinned 0, active paper higher than others."""
    config = config or RetrievalConfig()
    floors: dict[DocumentKey, int] = {}
    for entry in papers:
        if entry.pin_kind == "none":
            floors[entry.key] = 0
        else:
            floors[entry.key] = config.min_chunks_for(entry.is_active)
    return floors


async def resolve_planner_papers(
    cache: DocumentContextCache,
    load_text: PaperTextLoader,
    conversation_mode: ConversationMode = "paper",
    active_paper: PaperRef | None = None,
    selected_papers: Sequence[PaperRef] = (),
    pinned_papers: Sequence[PaperRef] = (),
    history_papers: Sequence[PaperRef] = (),
) -> list[PlannerPaper]:
    """Order, deduplicate and load the papers taking part in a request.

    Order is: active paper (paper mode only), explicitly selected papers,
    pinned papers and, in paper mode when nothing was selected or pinned,
    papers referenced earlier in the conversation. Documents are loaded
    through ``cache`` so text is extracted at most once per session.
    """
    active = active_paper if conversation_mode == "paper" else None
    include_history = conversation_mode == "paper" and not selected_papers and not pinned_papers
    pinned_keys = {paper.key for paper in pinned_papers}

    ordered: list[PaperRef] = []
    seen: set[DocumentKey] = set()
    sources: list[Sequence[PaperRef]] = [[active] if active else [], selected_papers, pinned_papers]
    if include_history:
        sources.append(history_papers)
    for source in sources:
        for paper in source:
            if paper.key in seen:
                continue
            seen.add(paper.key)
            ordered.append(paper)

    def loader_for(paper: PaperRef) -> Callable[[], Awaitable[str | None]]:
        return lambda: load_text(paper)

    documents = await asyncio.gather(
        *(cache.get_or_load(paper.key, paper.title, loader_for(paper)) for paper in ordered)
    )

    entries: list[PlannerPaper] = []
    for index, (paper, document) in enumerate(zip(ordered, documents)):
        is_active = active is not None and paper.key == active.key
        pin_kind: PinKind
        if paper.key in pinned_keys:
            pin_kind = "explicit"
        elif is_active:
            pin_kind = "implicit-active"
        else:
            pin_kind = "none"
        entries.append(
            PlannerPaper(
                order=index + 1,
                paper=paper,
                document=document,
                is_active=is_active,
                pin_kind=pin_kind,
            )
        )
    return entries


def _status_notes(
    assemblies: Sequence[RetrievedAssembly | None], provider: EmbeddingProvider | None
) -> list[str]:
    if provider is None:
        return []
    if any(assembly is not None and assembly.semantic_degraded for assembly in assemblies):
        return [SEMANTIC_DEGRADED_NOTE]
    return []


async def resolve_multi_context_plan(
    papers: Sequence[PlannerPaper],
    question: str,
    model: str,
    history: Sequence[Mapping[str, Any]] | None = None,
    images: int | str | Sequence[Any] | None = 0,
    reasoning: ReasoningConfig | str | None = None,
    max_tokens: int | str | None = None,
    input_token_cap: int | str | None = None,
    system_prompt: str = "",
    embedding_provider: EmbeddingProvider | None = None,
    conversation_mode: ConversationMode = "paper",
    config: RetrievalConfig | None = None,
) -> MultiContextPlan:
    """Decide the document context for one request.

    In paper mode without an explicit pin, full mode is never used: the
    implicitly active paper always goes through retrieval.
    """
    config = config or RetrievalConfig()
    budget = estimate_available_context_budget(
        model=model,
        prompt=question,
        history=history,
        images=images,
        reasoning=reasoning,
        max_tokens=max_tokens,
        input_token_cap=input_token_cap,
        system_prompt=system_prompt,
        config=config,
    )
    if not papers:
        return MultiContextPlan(mode="retrieval", context_text="", context_budget=budget)

    pinned = [entry for entry in papers if entry.pin_kind != "none"]
    unpinned = [entry for entry in papers if entry.pin_kind == "none"]
    has_explicit_pin = any(entry.pin_kind == "explicit" for entry in papers)
    relevant_unpinned = rank_unpinned_papers_by_question(unpinned, question)

    full_eligible = [] if conversation_mode == "paper" and not has_explicit_pin else pinned
    if full_eligible:
        full_text, full_tokens = assemble_full_multi_paper_context(full_eligible)
        mode = select_context_assembly_mode(full_text, full_tokens, budget.context_budget_tokens)
        if mode == "full":
            remaining = max(0, budget.context_budget_tokens - full_tokens)
            extra: RetrievedAssembly | None = None
            if remaining >= config.extra_retrieval_min_tokens and relevant_unpinned:
                extra = await assemble_retrieved_multi_paper_context(
                    relevant_unpinned,
                    question,
                    remaining,
                    min_chunks_by_paper={},
                    embedding_provider=embedding_provider,
                    config=config,
                )
            extra_chunks = extra.selected_chunk_count if extra else 0
            context_text = append_context_blocks(
                [full_text, extra.context_text if extra and extra_chunks else ""]
            )
            logger.info(
                f"Full-text context for {len(full_eligible)} papers "
                f"({full_tokens}/{budget.context_budget_tokens} tokens), "
                f"{extra_chunks} extra retrieved chunks"
            )
            return MultiContextPlan(
                mode="full",
                context_text=context_text,
                context_budget=budget,
                used_context_tokens=estimate_text_tokens(context_text),
                selected_paper_count=len(full_eligible)
                + (extra.selected_paper_count if extra and extra_chunks else 0),
                selected_chunk_count=extra_chunks,
                status_notes=_status_notes([extra], embedding_provider),
            )

    retrieval_papers = [*pinned, *relevant_unpinned]
    if not retrieval_papers:
        logger.debug("No pinned or relevant papers for this question")
        return MultiContextPlan(mode="retrieval", context_text="", context_budget=budget)

    retrieved = await assemble_retrieved_multi_paper_context(
        retrieval_papers,
        question,
        budget.context_budget_tokens,
        min_chunks_by_paper=build_min_chunk_map(retrieval_papers, config),
        embedding_provider=embedding_provider,
        config=config,
    )
    return MultiContextPlan(
        mode="retrieval",
        context_text=retrieved.context_text,
        context_budget=budget,
        used_context_tokens=estimate_text_tokens(retrieved.context_text),
        selected_paper_count=retrieved.selected_paper_count,
        selected_chunk_count=retrieved.selected_chunk_count,
        status_notes=_status_notes([retrieved], embedding_provider),
    )
