"""Tests for retrieval and embedding configuration models."""

import pytest
from pydantic import ValidationError

from papercontext.core.config.embedding_config import EmbeddingConfig
from papercontext.core.config.retrieval_config import RetrievalConfig


class TestRetrievalConfig:
    """Retrieval tunables."""

    def test_defaults(self, clean_environment):
        config = RetrievalConfig()

        assert config.chunk_target_length == 2000
        assert config.chunk_overlap == 200
        assert config.embedding_batch_size == 16
        assert config.hybrid_weight_bm25 == 0.5
        assert config.hybrid_weight_embedding == 0.5
        assert config.top_k_per_paper == 24
        assert config.mmr_lambda == 0.7
        assert config.min_chunks_for(True) == 2
        assert config.min_chunks_for(False) == 1
        assert config.min_context_budget_tokens == 1024

    def test_environment_overrides(self, clean_environment, monkeypatch):
        monkeypatch.setenv("PAPERCONTEXT_RETRIEVAL_TOP_K_PER_PAPER", "8")
        monkeypatch.setenv("PAPERCONTEXT_RETRIEVAL_MMR_LAMBDA", "0.5")

        config = RetrievalConfig()

        assert config.top_k_per_paper == 8
        assert config.mmr_lambda == 0.5

    @pytest.mark.parametrize(
        "overrides",
        [
            {"top_k_per_paper": 0},
            {"mmr_lambda": 1.5},
            {"min_other_paper_chunks": -1},
            {"chunk_target_length": 100, "chunk_overlap": 100},
        ],
    )
    def test_invalid_values_rejected(self, clean_environment, overrides):
        with pytest.raises(ValidationError):
            RetrievalConfig(**overrides)


class TestEmbeddingConfig:
    """Embedding endpoint settings."""

    def test_unconfigured_by_default(self, clean_environment):
        config = EmbeddingConfig()

        assert not config.is_provider_configured()
        assert len(config.get_missing_config()) == 2
        assert config.get_api_key() == ""

    def test_requires_both_base_and_key(self, clean_environment):
        assert not EmbeddingConfig(api_key="sk-1").is_provider_configured()
        assert not EmbeddingConfig(base_url="https://x.local").is_provider_configured()
        assert EmbeddingConfig(api_key="sk-1", base_url="https://x.local").is_provider_configured()

    def test_base_url_normalization(self, clean_environment):
        assert EmbeddingConfig(base_url=" https://x.local/v1/ ").base_url == "https://x.local/v1"
        assert EmbeddingConfig(base_url="   ").base_url is None
        with pytest.raises(ValidationError, match="http"):
            EmbeddingConfig(base_url="ftp://x.local")

    def test_model_typo_fix(self, clean_environment):
        assert EmbeddingConfig(model="text-embedding-small").model == "text-embedding-3-small"

    def test_repr_hides_api_key(self, clean_environment):
        config = EmbeddingConfig(api_key="sk-secret", base_url="https://x.local")

        assert "sk-secret" not in repr(config)
        assert "***" in repr(config)

    def test_load_from_env_falls_back_to_openai_variables(self, clean_environment, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        monkeypatch.setenv("OPENAI_BASE_URL", "https://env.local/v1")

        assert EmbeddingConfig.load_from_env() == {
            "api_key": "sk-env",
            "base_url": "https://env.local/v1",
        }

    def test_prefixed_environment_variables(self, clean_environment, monkeypatch):
        monkeypatch.setenv("PAPERCONTEXT_EMBEDDING_API_KEY", "sk-prefixed")
        monkeypatch.setenv("PAPERCONTEXT_EMBEDDING_BASE_URL", "https://prefixed.local")

        config = EmbeddingConfig()

        assert config.get_api_key() == "sk-prefixed"
        assert config.get_provider_config()["base_url"] == "https://prefixed.local"
