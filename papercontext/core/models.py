"""Domain models for papercontext.

The retrieval pipeline passes these between stages:

- ``PaperRef`` identifies a paper; its ``key`` (a ``DocumentKey``) is the
  identity used throughout scoring and packing.
- ``DocumentContext`` holds one paper's chunks, BM25 statistics and the
  lazily computed chunk embeddings.
- ``ScoredCandidate`` is one chunk considered for inclusion.
- ``RetrievalResult`` is a tagged union telling callers which scoring mode
  produced the candidates.
- ``ContextBudget``, ``RetrievedAssembly`` and ``MultiContextPlan`` carry the
  budget accounting and planner output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Literal, NamedTuple, TypedDict, Union

from papercontext.core.utils.single_flight import SingleFlight

AssemblyMode = Literal["full", "retrieval"]
PinKind = Literal["explicit", "implicit-active", "none"]
RetrievalMode = Literal["hybrid", "lexical", "none"]


class DocumentKey(NamedTuple):
    """(owning item id, content item id) pair identifying one source document."""

    owner_id: int
    content_item_id: int

    def __str__(self) -> str:
        return f"{self.owner_id}:{self.content_item_id}"


@dataclass(frozen=True)
class PaperRef:
    """Identity and display metadata of a source document."""

    owner_id: int
    content_item_id: int
    title: str = ""
    citation_key: str | None = None
    first_creator: str | None = None
    year: str | None = None

    @property
    def key(self) -> DocumentKey:
        return DocumentKey(self.owner_id, self.content_item_id)


@dataclass
class ChunkStat:
    """Term statistics of one chunk."""

    index: int
    length: int
    tf: dict[str, int]
    unique_terms: list[str]


@dataclass
class DocumentContext:
    """Chunks, lexical index and cached embeddings of one document.

    ``embeddings`` is filled lazily by the embedding cache. Once
    ``embedding_failed`` is set it stays set for the lifetime of this
    instance.
    """

    title: str
    chunks: list[str]
    chunk_stats: list[ChunkStat]
    doc_freq: dict[str, int]
    avg_chunk_length: float
    full_length: int
    embeddings: list[list[float]] | None = None
    embedding_failed: bool = False
    embedding_flight: SingleFlight[bool] = field(
        default_factory=SingleFlight, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if len(self.chunks) != len(self.chunk_stats):
            raise ValueError(
                f"chunk/stat length mismatch: {len(self.chunks)} chunks, "
                f"{len(self.chunk_stats)} stats"
            )

    @classmethod
    def empty(cls, title: str = "") -> DocumentContext:
        """Context for a document without extractable text."""
        return cls(
            title=title,
            chunks=[],
            chunk_stats=[],
            doc_freq={},
            avg_chunk_length=0.0,
            full_length=0,
        )

    @property
    def has_chunks(self) -> bool:
        return bool(self.chunks)

    @property
    def has_usable_embeddings(self) -> bool:
        return self.embeddings is not None and len(self.embeddings) == len(
            self.chunks
        )


@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    """One chunk considered for inclusion in the context."""

    paper_key: DocumentKey
    owner_id: int
    content_item_id: int
    title: str
    chunk_index: int
    chunk_text: str
    estimated_tokens: int
    bm25_score: float
    embedding_score: float
    hybrid_score: float

    @property
    def selection_key(self) -> tuple[DocumentKey, int]:
        return (self.paper_key, self.chunk_index)


@dataclass(frozen=True)
class HybridRetrieval:
    """Candidates scored with fused BM25 and embedding similarity."""

    candidates: list[ScoredCandidate]
    mode: ClassVar[RetrievalMode] = "hybrid"


@dataclass(frozen=True)
class LexicalRetrieval:
    """Candidates scored with BM25 only; ``reason`` says why."""

    candidates: list[ScoredCandidate]
    reason: str
    mode: ClassVar[RetrievalMode] = "lexical"


@dataclass(frozen=True)
class NoCandidates:
    """The document produced no candidates (missing or empty text)."""

    reason: str
    mode: ClassVar[RetrievalMode] = "none"

    @property
    def candidates(self) -> list[ScoredCandidate]:
        return []


RetrievalResult = Union[HybridRetrieval, LexicalRetrieval, NoCandidates]


@dataclass(frozen=True)
class ReasoningConfig:
    """Reasoning provider and level of a request."""

    level: str
    provider: str | None = None


@dataclass(frozen=True)
class ContextBudget:
    """Token accounting for one request."""

    model_limit_tokens: int
    limit_tokens: int
    output_reserve_tokens: int
    reasoning_reserve_tokens: int
    base_input_tokens: int
    soft_limit_tokens: int
    context_budget_tokens: int


@dataclass
class PlannerPaper:
    """A paper taking part in planning, with its loaded document."""

    order: int
    paper: PaperRef
    document: DocumentContext | None = None
    is_active: bool = False
    pin_kind: PinKind = "none"

    @property
    def key(self) -> DocumentKey:
        return self.paper.key


@dataclass
class RetrievedAssembly:
    """Output of the multi-paper packer."""

    context_text: str = ""
    selected_chunk_count: int = 0
    selected_paper_count: int = 0
    selected: list[ScoredCandidate] = field(default_factory=list)
    retrieval_modes: dict[DocumentKey, RetrievalMode] = field(default_factory=dict)

    @property
    def used_tokens(self) -> int:
        return sum(candidate.estimated_tokens for candidate in self.selected)

    @property
    def semantic_degraded(self) -> bool:
        """True when any paper with chunks fell back to lexical scoring."""
        return any(mode == "lexical" for mode in self.retrieval_modes.values())


@dataclass
class MultiContextPlan:
    """Final context decision for one request."""

    mode: AssemblyMode
    context_text: str
    context_budget: ContextBudget
    used_context_tokens: int = 0
    selected_paper_count: int = 0
    selected_chunk_count: int = 0
    status_notes: list[str] = field(default_factory=list)


class ImageUrl(TypedDict, total=False):
    url: str
    detail: str


class TextPart(TypedDict):
    type: Literal["text"]
    text: str


class ImagePart(TypedDict):
    type: Literal["image_url"]
    image_url: ImageUrl


MessageContent = Union[str, list[Union[TextPart, ImagePart]]]


class ChatMessage(TypedDict):
    role: Literal["system", "user", "assistant"]
    content: MessageContent
