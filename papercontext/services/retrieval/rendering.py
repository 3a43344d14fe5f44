"""Rendering of evidence packs, full-text contexts and metadata fallbacks.

All output is plain text meant to be placed in a single "Document Context"
system message. Evidence labels ``[P{paper}-C{chunk}]`` are 1-based and
derived only from the paper's position in the caller's list and the chunk
index, so they are stable across re-renders.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from papercontext.core.constants import CONTEXT_BLOCK_SEPARATOR
from papercontext.core.models import (
    DocumentContext,
    DocumentKey,
    PaperRef,
    PlannerPaper,
    ScoredCandidate,
)
from papercontext.core.utils.token_utils import estimate_text_tokens

FULL_CONTEXT_HEADER = "Full Paper Contexts:"
METADATA_HEADER = "Paper Context Metadata:"
EVIDENCE_HEADER = "Retrieved Paper Evidence:"


def evidence_label(paper_index: int, chunk_index: int) -> str:
    """Stable 1-based label for a chunk of the paper at ``paper_index``."""
    return f"[P{paper_index + 1}-C{chunk_index + 1}]"


def build_paper_metadata(paper: PaperRef, document: DocumentContext | None = None) -> str:
    """Metadata lines (title, citation key, author, year) of one paper."""
    lines: list[str] = []
    title = (paper.title or (document.title if document else "")).strip()
    if title:
        lines.append(f"Title: {title}")
    if paper.citation_key and paper.citation_key.strip():
        lines.append(f"Citation key: {paper.citation_key.strip()}")
    if paper.first_creator and paper.first_creator.strip():
        lines.append(f"First author: {paper.first_creator.strip()}")
    if paper.year and paper.year.strip():
        lines.append(f"Year: {paper.year.strip()}")
    return "\n".join(lines)


def build_full_paper_context(paper: PaperRef, document: DocumentContext | None) -> str:
    """Metadata plus the complete chunk text of one paper."""
    parts: list[str] = []
    metadata = build_paper_metadata(paper, document)
    if metadata:
        parts.append(metadata)
    if document is not None and document.chunks:
        parts.append("Paper Text:")
        parts.append("\n\n".join(document.chunks))
    return "\n\n".join(parts)


def build_metadata_only_fallback(papers: Sequence[PaperRef]) -> str:
    """One metadata block per paper, used when no chunk text is available."""
    if not papers:
        return ""
    blocks = [
        f"Paper {index + 1}\n{build_full_paper_context(paper, None)}".rstrip()
        for index, paper in enumerate(papers)
    ]
    return f"{METADATA_HEADER}\n\n{CONTEXT_BLOCK_SEPARATOR.join(blocks)}"


def assemble_full_multi_paper_context(papers: Sequence[PlannerPaper]) -> tuple[str, int]:
    """Full text of every paper, numbered in the given order.

    Returns:
        (context text, estimated tokens); ("", 0) when nothing renders
    """
    blocks: list[str] = []
    for index, entry in enumerate(papers):
        block = build_full_paper_context(entry.paper, entry.document).strip()
        if not block:
            continue
        blocks.append(f"Paper {index + 1}\n{block}")
    if not blocks:
        return "", 0
    text = f"{FULL_CONTEXT_HEADER}\n\n{CONTEXT_BLOCK_SEPARATOR.join(blocks)}"
    return text, estimate_text_tokens(text)


def render_evidence_pack(
    papers: Sequence[PaperRef], candidates: Iterable[ScoredCandidate]
) -> str:
    """Render selected chunks grouped by paper in caller order.

    Candidates are deduplicated by (document key, chunk index) and listed in
    ascending chunk order. Papers without candidates are omitted; an empty
    string means nothing was selected.
    """
    position: dict[DocumentKey, int] = {}
    for index, paper in enumerate(papers):
        position.setdefault(paper.key, index)

    grouped: dict[DocumentKey, dict[int, ScoredCandidate]] = {}
    for candidate in candidates:
        if candidate.paper_key not in position:
            continue
        grouped.setdefault(candidate.paper_key, {}).setdefault(
            candidate.chunk_index, candidate
        )
    if not grouped:
        return ""

    blocks: list[str] = []
    for key in sorted(grouped, key=position.__getitem__):
        paper_index = position[key]
        paper = papers[paper_index]
        lines = [f"Paper {paper_index + 1}"]
        metadata = build_paper_metadata(paper)
        if metadata:
            lines.append(metadata)
        lines.append("Evidence:")
        snippets = [
            f"{evidence_label(paper_index, chunk_index)} {grouped[key][chunk_index].chunk_text.strip()}"
            for chunk_index in sorted(grouped[key])
        ]
        blocks.append("\n".join(lines) + "\n" + "\n\n".join(snippets))

    return f"{EVIDENCE_HEADER}\n\n{CONTEXT_BLOCK_SEPARATOR.join(blocks)}"


def append_context_blocks(blocks: Iterable[str | None]) -> str:
    """Join non-blank context blocks with the block separator."""
    non_empty = [block.strip() for block in blocks if block and block.strip()]
    return CONTEXT_BLOCK_SEPARATOR.join(non_empty)
