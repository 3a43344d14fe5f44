"""
Embedding configuration for papercontext.

This module provides a type-safe, validated configuration for the
OpenAI-compatible embedding endpoint used by hybrid retrieval. Embeddings are
strictly optional: when either the API key or the base URL is missing the
retrieval core runs lexical-only.
"""

import os
from typing import Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from papercontext.core.constants import (
    EMBEDDING_BATCH_SIZE,
    OPENAI_DEFAULT_EMBEDDING_MODEL,
)


class EmbeddingConfig(BaseSettings):
    """
    Embedding endpoint configuration.

    Configuration Sources (in order of precedence):
    1. Explicit keyword arguments / per-request overrides
    2. Environment variables (PAPERCONTEXT_EMBEDDING_*)
    3. Default values

    Environment Variables:
        PAPERCONTEXT_EMBEDDING_API_KEY=sk-...
        PAPERCONTEXT_EMBEDDING_MODEL=text-embedding-3-small
        PAPERCONTEXT_EMBEDDING_BASE_URL=https://api.openai.com/v1
    """

    model_config = SettingsConfigDict(
        env_prefix="PAPERCONTEXT_EMBEDDING_",
        env_nested_delimiter="__",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",  # Ignore unknown fields for forward compatibility
    )

    model: str = Field(
        default=OPENAI_DEFAULT_EMBEDDING_MODEL,
        description="Embedding model name",
    )

    api_key: SecretStr | None = Field(
        default=None, description="API key for authentication"
    )

    base_url: str | None = Field(
        default=None,
        description="API base or full endpoint URL (chat/responses URLs are remapped)",
    )

    # Internal settings - not exposed to users
    batch_size: int = Field(
        default=EMBEDDING_BATCH_SIZE, description="Texts per embedding request"
    )
    timeout: int = Field(default=30, description="Request timeout in seconds")

    @field_validator("model")
    def validate_model(cls, v: str) -> str:  # noqa: N805
        """Fix common model name typos."""
        typo_fixes = {
            "text-embedding-small": "text-embedding-3-small",
            "text-embedding-large": "text-embedding-3-large",
        }
        return typo_fixes.get(v.strip(), v.strip())

    @field_validator("base_url")
    def validate_base_url(cls, v: str | None) -> str | None:  # noqa: N805
        """Validate and normalize base URL."""
        if v is None:
            return v

        v = v.strip().rstrip("/")
        if not v:
            return None

        if not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError("base_url must start with http:// or https://")

        return v

    @field_validator("batch_size", "timeout")
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        """Batch size and timeout must be positive."""
        if v <= 0:
            raise ValueError("must be positive")
        return v

    def get_api_key(self) -> str:
        """Return the plain API key, or "" when unset."""
        if self.api_key is None:
            return ""
        return self.api_key.get_secret_value().strip()

    def get_provider_config(self) -> dict[str, Any]:
        """
        Get provider configuration dictionary.

        Returns:
            Keyword arguments for OpenAICompatibleEmbeddingProvider
        """
        config: dict[str, Any] = {
            "model": self.model,
            "batch_size": self.batch_size,
            "timeout": self.timeout,
        }
        if self.api_key:
            config["api_key"] = self.get_api_key()
        if self.base_url:
            config["base_url"] = self.base_url
        return config

    def is_provider_configured(self) -> bool:
        """
        Check whether the embedding path can be enabled.

        Both a base URL and an API key are required; missing either one
        silently disables semantic scoring.
        """
        return bool(self.base_url) and bool(self.get_api_key())

    def get_missing_config(self) -> list[str]:
        """
        Get list of missing required configuration.

        Returns:
            List of missing configuration parameter names
        """
        missing = []
        if not self.get_api_key():
            missing.append("api_key (set PAPERCONTEXT_EMBEDDING_API_KEY)")
        if not self.base_url:
            missing.append("base_url (set PAPERCONTEXT_EMBEDDING_BASE_URL)")
        return missing

    @classmethod
    def load_from_env(cls) -> dict[str, Any]:
        """Load embedding config from environment variables.

        Falls back to the conventional OPENAI_* variables when the prefixed
        ones are absent.
        """
        config: dict[str, Any] = {}
        if api_key := os.getenv("PAPERCONTEXT_EMBEDDING_API_KEY") or os.getenv(
            "OPENAI_API_KEY"
        ):
            config["api_key"] = api_key
        if base_url := os.getenv("PAPERCONTEXT_EMBEDDING_BASE_URL") or os.getenv(
            "OPENAI_BASE_URL"
        ):
            config["base_url"] = base_url
        if model := os.getenv("PAPERCONTEXT_EMBEDDING_MODEL"):
            config["model"] = model
        return config

    @classmethod
    def from_overrides(
        cls, api_base: str | None = None, api_key: str | None = None
    ) -> "EmbeddingConfig":
        """Build a config from per-request credential overrides."""
        overrides: dict[str, Any] = {}
        if api_base is not None:
            overrides["base_url"] = api_base
        if api_key is not None:
            overrides["api_key"] = api_key
        return cls(**overrides)

    def __repr__(self) -> str:
        """String representation hiding sensitive information."""
        api_key_display = "***" if self.api_key else None
        parts = [
            f"model={self.model}",
            f"api_key={api_key_display}",
        ]
        if self.base_url:
            parts.append(f"base_url={self.base_url}")
        return f"EmbeddingConfig({', '.join(parts)})"
