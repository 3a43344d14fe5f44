"""
Retrieval and packing configuration for papercontext.

Every tunable of the chunk/score/pack pipeline lives here so that the
coverage floors, fusion weights and MMR trade-off can be adjusted without
touching the algorithms.

Environment Variables:
    PAPERCONTEXT_RETRIEVAL_TOP_K_PER_PAPER=24
    PAPERCONTEXT_RETRIEVAL_MMR_LAMBDA=0.7
    PAPERCONTEXT_RETRIEVAL_MIN_ACTIVE_PAPER_CHUNKS=2
"""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self

from papercontext.core import constants


class RetrievalConfig(BaseSettings):
    """Tunables for chunking, hybrid scoring and multi-paper packing."""

    model_config = SettingsConfigDict(
        env_prefix="PAPERCONTEXT_RETRIEVAL_",
        env_nested_delimiter="__",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    chunk_target_length: int = Field(
        default=constants.CHUNK_TARGET_LENGTH,
        description="Maximum characters per chunk",
    )
    chunk_overlap: int = Field(
        default=constants.CHUNK_OVERLAP,
        description="Character overlap between hard-split windows",
    )
    embedding_batch_size: int = Field(
        default=constants.EMBEDDING_BATCH_SIZE,
        description="Chunks per embedding request",
    )
    hybrid_weight_bm25: float = Field(
        default=constants.HYBRID_WEIGHT_BM25,
        description="Lexical weight when embeddings are available",
    )
    hybrid_weight_embedding: float = Field(
        default=constants.HYBRID_WEIGHT_EMBEDDING,
        description="Semantic weight when embeddings are available",
    )
    top_k_per_paper: int = Field(
        default=constants.RETRIEVAL_TOP_K_PER_PAPER,
        description="Candidates kept per paper before packing",
    )
    mmr_lambda: float = Field(
        default=constants.RETRIEVAL_MMR_LAMBDA,
        description="Relevance/diversity trade-off for MMR (1.0 = relevance only)",
    )
    min_active_paper_chunks: int = Field(
        default=constants.RETRIEVAL_MIN_ACTIVE_PAPER_CHUNKS,
        description="Coverage floor for the paper the user is viewing",
    )
    min_other_paper_chunks: int = Field(
        default=constants.RETRIEVAL_MIN_OTHER_PAPER_CHUNKS,
        description="Coverage floor for every other pinned paper",
    )
    min_context_budget_tokens: int = Field(
        default=constants.MIN_CONTEXT_BUDGET_TOKENS,
        description="Floor applied to the computed context budget",
    )
    extra_retrieval_min_tokens: int = Field(
        default=constants.EXTRA_RETRIEVAL_MIN_TOKENS,
        description="Leftover budget needed before retrieving unpinned papers in full mode",
    )

    @field_validator(
        "chunk_target_length",
        "embedding_batch_size",
        "top_k_per_paper",
        "min_context_budget_tokens",
    )
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        """Sizes must be positive."""
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator(
        "chunk_overlap",
        "min_active_paper_chunks",
        "min_other_paper_chunks",
        "extra_retrieval_min_tokens",
    )
    def validate_non_negative(cls, v: int) -> int:  # noqa: N805
        """Counts and overlaps cannot be negative."""
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("hybrid_weight_bm25", "hybrid_weight_embedding", "mmr_lambda")
    def validate_unit_interval(cls, v: float) -> float:  # noqa: N805
        """Weights and lambda are fractions."""
        if not 0.0 <= v <= 1.0:
            raise ValueError("must be between 0.0 and 1.0")
        return v

    @model_validator(mode="after")
    def validate_overlap(self) -> Self:
        """Hard-split windows must advance."""
        if self.chunk_overlap >= self.chunk_target_length:
            raise ValueError(
                "chunk_overlap must be smaller than chunk_target_length "
                f"({self.chunk_overlap} >= {self.chunk_target_length})"
            )
        return self

    def min_chunks_for(self, is_active: bool) -> int:
        """Coverage floor for a pinned paper."""
        return self.min_active_paper_chunks if is_active else self.min_other_paper_chunks
