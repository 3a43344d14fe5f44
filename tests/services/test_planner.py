"""Tests for assembly-mode selection and the multi-paper context planner."""

import pytest

from papercontext.core.config.retrieval_config import RetrievalConfig
from papercontext.core.constants import SEMANTIC_DEGRADED_NOTE
from papercontext.services.document_context import DocumentContextCache
from papercontext.services.retrieval.planner import (
    build_min_chunk_map,
    resolve_multi_context_plan,
    resolve_planner_papers,
    select_context_assembly_mode,
)
from tests.helpers.documents import make_paper, make_planner_paper
from tests.helpers.fake_embedding_providers import FailingEmbeddingProvider

SMALL_CHUNKS = ["Graph attention improves node classification.", "We evaluate on Cora."]


def _large_chunks(count: int = 40) -> list[str]:
    return [f"Section {i} graph attention results. " + "filler text " * 150 for i in range(count)]


class TestSelectContextAssemblyMode:
    """Full versus retrieval."""

    def test_full_when_text_fits(self):
        assert select_context_assembly_mode("A short full context", 120, 2000) == "full"

    def test_retrieval_when_text_exceeds_budget(self):
        assert select_context_assembly_mode("Very long context", 12_000, 1500) == "retrieval"

    def test_retrieval_without_text(self):
        assert select_context_assembly_mode("   ", 0, 2000) == "retrieval"


class TestBuildMinChunkMap:
    """Coverage floors by pin kind."""

    def test_floors(self, clean_environment):
        active = make_planner_paper(1, make_paper(1, 1), is_active=True, pin_kind="implicit-active")
        pinned = make_planner_paper(2, make_paper(2, 2), pin_kind="explicit")
        unpinned = make_planner_paper(3, make_paper(3, 3))

        floors = build_min_chunk_map([active, pinned, unpinned])

        assert floors == {active.key: 2, pinned.key: 1, unpinned.key: 0}

    def test_configured_floors(self, clean_environment):
        config = RetrievalConfig(min_active_paper_chunks=4, min_other_paper_chunks=3)
        active = make_planner_paper(1, make_paper(1, 1), is_active=True, pin_kind="explicit")

        assert build_min_chunk_map([active], config) == {active.key: 4}


class TestResolvePlannerPapers:
    """Paper ordering, pin kinds and document loading."""

    @pytest.mark.asyncio
    async def test_orders_deduplicates_and_assigns_pin_kinds(self):
        active = make_paper(1, 11, title="Active")
        selected = make_paper(2, 22, title="Selected")
        pinned = make_paper(3, 33, title="Pinned")
        loaded: list[str] = []

        async def load_text(paper):
            loaded.append(paper.title)
            return f"{paper.title} body text."

        entries = await resolve_planner_papers(
            DocumentContextCache(),
            load_text,
            conversation_mode="paper",
            active_paper=active,
            selected_papers=[selected, active],
            pinned_papers=[pinned, selected],
            history_papers=[make_paper(4, 44, title="History")],
        )

        assert [e.paper.title for e in entries] == ["Active", "Selected", "Pinned"]
        assert [e.order for e in entries] == [1, 2, 3]
        assert [e.pin_kind for e in entries] == ["implicit-active", "explicit", "explicit"]
        assert [e.is_active for e in entries] == [True, False, False]
        assert entries[0].document.chunks == ["Active body text."]
        assert sorted(loaded) == ["Active", "Pinned", "Selected"]

    @pytest.mark.asyncio
    async def test_history_papers_used_when_nothing_selected(self):
        async def load_text(paper):
            return "text"

        entries = await resolve_planner_papers(
            DocumentContextCache(),
            load_text,
            active_paper=make_paper(1, 11, title="Active"),
            history_papers=[make_paper(4, 44, title="History")],
        )

        assert [e.paper.title for e in entries] == ["Active", "History"]
        assert entries[1].pin_kind == "none"

    @pytest.mark.asyncio
    async def test_open_mode_ignores_active_paper_and_history(self):
        async def load_text(paper):
            return "text"

        entries = await resolve_planner_papers(
            DocumentContextCache(),
            load_text,
            conversation_mode="open",
            active_paper=make_paper(1, 11, title="Active"),
            history_papers=[make_paper(4, 44, title="History")],
        )

        assert entries == []

    @pytest.mark.asyncio
    async def test_documents_are_loaded_once_per_cache(self):
        cache = DocumentContextCache()
        paper = make_paper(2, 22, title="Pinned")
        calls = 0

        async def load_text(paper):
            nonlocal calls
            calls += 1
            return "text"

        first = await resolve_planner_papers(cache, load_text, pinned_papers=[paper])
        second = await resolve_planner_papers(cache, load_text, pinned_papers=[paper])

        assert calls == 1
        assert first[0].document is second[0].document


class TestResolveMultiContextPlan:
    """End-to-end planning decisions."""

    @pytest.mark.asyncio
    async def test_no_papers_gives_empty_retrieval_plan(self, clean_environment):
        plan = await resolve_multi_context_plan([], "What is this?", "gpt-4o-mini")

        assert plan.mode == "retrieval"
        assert plan.context_text == ""
        assert plan.selected_chunk_count == 0
        assert plan.context_budget.context_budget_tokens >= 1024

    @pytest.mark.asyncio
    async def test_implicit_active_paper_always_uses_retrieval(self, clean_environment):
        active = make_planner_paper(
            1, make_paper(1, 11, title="Active"), SMALL_CHUNKS, is_active=True, pin_kind="implicit-active"
        )

        plan = await resolve_multi_context_plan([active], "How does graph attention work?", "gpt-4o-mini")

        assert plan.mode == "retrieval"
        assert "[P1-C1]" in plan.context_text
        assert plan.selected_chunk_count == 2
        assert plan.status_notes == []

    @pytest.mark.asyncio
    async def test_explicit_pin_that_fits_uses_full_text(self, clean_environment):
        pinned = make_planner_paper(1, make_paper(1, 11, title="Pinned"), SMALL_CHUNKS, pin_kind="explicit")

        plan = await resolve_multi_context_plan([pinned], "Summarize it", "gpt-4o-mini")

        assert plan.mode == "full"
        assert plan.context_text.startswith("Full Paper Contexts:")
        assert "Paper Text:" in plan.context_text
        assert plan.selected_paper_count == 1
        assert plan.selected_chunk_count == 0
        assert 0 < plan.used_context_tokens <= plan.context_budget.context_budget_tokens

    @pytest.mark.asyncio
    async def test_full_mode_appends_evidence_from_relevant_unpinned_paper(self, clean_environment):
        pinned = make_planner_paper(1, make_paper(1, 11, title="Pinned"), SMALL_CHUNKS, pin_kind="explicit")
        other = make_planner_paper(
            2,
            make_paper(2, 22, title="Residual Learning", citation_key="He2016"),
            ["Residual connections ease optimization.", "Deeper networks train well."],
        )

        plan = await resolve_multi_context_plan(
            [pinned, other], "How does He2016 compare on residual connections?", "gpt-4o-mini"
        )

        assert plan.mode == "full"
        assert "Full Paper Contexts:" in plan.context_text
        assert "Retrieved Paper Evidence:" in plan.context_text
        assert "Residual connections ease optimization." in plan.context_text
        assert plan.selected_paper_count == 2
        assert plan.selected_chunk_count >= 1

    @pytest.mark.asyncio
    async def test_irrelevant_unpinned_paper_is_left_out(self, clean_environment):
        pinned = make_planner_paper(1, make_paper(1, 11, title="Pinned"), SMALL_CHUNKS, pin_kind="explicit")
        other = make_planner_paper(2, make_paper(2, 22, title="Residual Learning"), ["Residual connections."])

        plan = await resolve_multi_context_plan([pinned, other], "thanks!", "gpt-4o-mini")

        assert plan.mode == "full"
        assert "Residual connections." not in plan.context_text
        assert plan.selected_paper_count == 1

    @pytest.mark.asyncio
    async def test_oversized_pin_falls_back_to_retrieval_within_budget(self, clean_environment):
        pinned = make_planner_paper(1, make_paper(1, 11, title="Big"), _large_chunks(), pin_kind="explicit")

        plan = await resolve_multi_context_plan(
            [pinned], "graph attention results", "gpt-4o-mini", input_token_cap=8000
        )

        assert plan.mode == "retrieval"
        assert plan.selected_chunk_count >= 1
        assert "[P1-" in plan.context_text
        budget = plan.context_budget.context_budget_tokens
        # Every large chunk costs 459 estimated tokens
        assert plan.selected_chunk_count <= budget // 459

    @pytest.mark.asyncio
    async def test_open_mode_uses_full_text_for_implicit_pins(self, clean_environment):
        """Outside paper mode, pinned papers are eligible for full text without an explicit pin."""
        pinned = make_planner_paper(
            1, make_paper(1, 11, title="Active"), SMALL_CHUNKS, is_active=True, pin_kind="implicit-active"
        )

        plan = await resolve_multi_context_plan(
            [pinned], "Summarize it", "gpt-4o-mini", conversation_mode="open"
        )

        assert plan.mode == "full"

    @pytest.mark.asyncio
    async def test_semantic_degradation_is_reported(self, clean_environment):
        active = make_planner_paper(
            1, make_paper(1, 11, title="Active"), SMALL_CHUNKS, is_active=True, pin_kind="implicit-active"
        )

        plan = await resolve_multi_context_plan(
            [active],
            "How does graph attention work?",
            "gpt-4o-mini",
            embedding_provider=FailingEmbeddingProvider(dims=8),
        )

        assert plan.mode == "retrieval"
        assert plan.status_notes == [SEMANTIC_DEGRADED_NOTE]
        assert plan.selected_chunk_count == 2
