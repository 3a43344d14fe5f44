"""Tests for context budget planning."""

import pytest

from papercontext.core.config.retrieval_config import RetrievalConfig
from papercontext.core.models import ReasoningConfig
from papercontext.services.retrieval.budget_planner import (
    estimate_available_context_budget,
    resolve_output_reserve,
    resolve_reasoning_reserve,
)


class TestReserves:
    """Output and reasoning reserves."""

    @pytest.mark.parametrize(
        "max_tokens, expected",
        [(None, 4096), (200, 512), (2000, 2000), (12_000, 8192), ("bogus", 4096)],
    )
    def test_output_reserve_is_clamped(self, max_tokens, expected):
        assert resolve_output_reserve(max_tokens) == expected

    @pytest.mark.parametrize(
        "reasoning, expected",
        [
            (None, 256),
            ("none", 256),
            ("minimal", 512),
            ("low", 1024),
            (ReasoningConfig(level="medium", provider="openai"), 2048),
            ("HIGH", 4096),
            ("xhigh", 8192),
            ("turbo", 1024),
        ],
    )
    def test_reasoning_reserve_by_level(self, reasoning, expected):
        assert resolve_reasoning_reserve(reasoning) == expected


class TestEstimateAvailableContextBudget:
    """Budget arithmetic."""

    def test_computes_budget_from_model_limits_and_reserves(self, clean_environment):
        history = [
            {"role": "user", "content": "Previous question"},
            {"role": "assistant", "content": "Previous answer"},
        ]
        plan = estimate_available_context_budget(
            model="gemini-2.5-pro",
            prompt="Summarize three papers and compare them.",
            history=history,
            max_tokens=200,
        )

        assert plan.model_limit_tokens == 1_048_576
        assert plan.output_reserve_tokens == 512
        assert plan.reasoning_reserve_tokens == 256
        assert plan.limit_tokens <= plan.model_limit_tokens
        assert plan.base_input_tokens <= plan.soft_limit_tokens
        assert plan.context_budget_tokens >= 1024

    def test_respects_input_cap_override_and_high_reasoning(self, clean_environment):
        plan = estimate_available_context_budget(
            model="gpt-4o-mini",
            prompt="Find commonality.",
            input_token_cap=32_000,
            max_tokens=12_000,
            reasoning=ReasoningConfig(level="high", provider="openai"),
        )

        assert plan.limit_tokens == 32_000
        assert plan.output_reserve_tokens == 8192
        assert plan.reasoning_reserve_tokens == 4096
        assert plan.context_budget_tokens >= 1024

    def test_exact_arithmetic(self, clean_environment):
        """soft = floor(0.9 * limit) - output - reasoning; budget = soft - base."""
        plan = estimate_available_context_budget(
            model="gpt-4o-mini",
            prompt="abcd",
            system_prompt="abcdefgh",
            images=2,
        )

        assert plan.soft_limit_tokens == 115_200 - 4096 - 256
        assert plan.base_input_tokens == (4 + 2) + (4 + 1) + 2 * 1024
        assert plan.context_budget_tokens == plan.soft_limit_tokens - plan.base_input_tokens

    def test_budget_floor_applies_when_request_is_tight(self, clean_environment):
        plan = estimate_available_context_budget(
            model="gpt-4o-mini",
            prompt="x" * 40_000,
            input_token_cap=4000,
        )

        assert plan.soft_limit_tokens == 1024
        assert plan.context_budget_tokens == 1024

    def test_configured_minimum_budget(self, clean_environment):
        config = RetrievalConfig(min_context_budget_tokens=4096)
        plan = estimate_available_context_budget(
            model="gpt-4o-mini", prompt="x" * 40_000, input_token_cap=4000, config=config
        )

        assert plan.context_budget_tokens == 4096

    def test_image_list_counts_non_empty_entries(self, clean_environment):
        with_images = estimate_available_context_budget(
            model="gpt-4o-mini", images=["data:image/png;base64,AA", "", None]
        )
        without = estimate_available_context_budget(model="gpt-4o-mini")

        assert with_images.base_input_tokens - without.base_input_tokens == 1024

    def test_single_image_string_counts_once(self, clean_environment):
        url = "data:image/png;base64," + "A" * 200
        as_string = estimate_available_context_budget(model="gpt-4o", prompt="q", images=url)
        as_list = estimate_available_context_budget(model="gpt-4o", prompt="q", images=[url])
        blank = estimate_available_context_budget(model="gpt-4o", prompt="q", images="   ")
        none = estimate_available_context_budget(model="gpt-4o", prompt="q")

        assert as_string.base_input_tokens == as_list.base_input_tokens
        assert as_string.context_budget_tokens == as_list.context_budget_tokens
        assert as_string.base_input_tokens - none.base_input_tokens == 1024
        assert blank.base_input_tokens == none.base_input_tokens
