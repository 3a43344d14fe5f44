"""OpenAI-compatible embedding provider over plain HTTP (httpx).

Works with any endpoint that accepts ``POST {"model", "input"}`` and answers
``{"data": [{"embedding": [...]}, ...]}``, which covers OpenAI and most
self-hosted or proxy deployments.
"""

import asyncio
from typing import Any

import httpx
from loguru import logger

from papercontext.core.config.embedding_config import EmbeddingConfig
from papercontext.core.config.openai_utils import (
    build_request_headers,
    is_official_openai_endpoint,
    resolve_embeddings_endpoint,
)
from papercontext.core.constants import (
    EMBEDDING_BATCH_SIZE,
    OPENAI_DEFAULT_EMBEDDING_MODEL,
)
from papercontext.core.exceptions import (
    ConfigurationError,
    EmbeddingDimensionError,
    EmbeddingProviderError,
)

from .shared_utils import (
    get_usage_stats_dict,
    parse_embedding_response,
    validate_text_input,
)


class OpenAICompatibleEmbeddingProvider:
    """Embedding provider for OpenAI-compatible ``/embeddings`` endpoints.

    Thread Safety:
        Safe for concurrent ``embed()`` calls from one event loop. An
        injected ``client`` is shared and never closed by the provider.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str = OPENAI_DEFAULT_EMBEDDING_MODEL,
        batch_size: int = EMBEDDING_BATCH_SIZE,
        timeout: int = 30,
        retry_attempts: int = 1,
        retry_delay: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the provider.

        Args:
            api_key: Bearer token for the endpoint
            base_url: API base or full endpoint URL
            model: Embedding model name
            batch_size: Maximum texts per request
            timeout: Request timeout in seconds
            retry_attempts: Attempts per batch for transport errors and 429/5xx
            retry_delay: Base delay between attempts (doubled each retry)
            client: Optional shared httpx client (tests inject a MockTransport)
        """
        if not api_key or not api_key.strip():
            raise ConfigurationError("api_key is required for the embedding provider")
        endpoint = resolve_embeddings_endpoint(base_url)
        if not endpoint:
            raise ConfigurationError("base_url is required for the embedding provider")
        if batch_size <= 0:
            raise ConfigurationError(f"batch_size must be positive, got {batch_size}")
        if timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {timeout}")

        self._api_key = api_key.strip()
        self._base_url = base_url
        self._endpoint = endpoint
        self._model = model
        self._batch_size = batch_size
        self._timeout = timeout
        self._retry_attempts = max(1, retry_attempts)
        self._retry_delay = retry_delay
        self._client = client

        # Usage tracking
        self._requests_made = 0
        self._tokens_used = 0
        self._embeddings_generated = 0

    @classmethod
    def from_config(
        cls, config: EmbeddingConfig, client: httpx.AsyncClient | None = None
    ) -> "OpenAICompatibleEmbeddingProvider":
        if not config.is_provider_configured():
            raise ConfigurationError(
                f"Embedding provider is not configured: {', '.join(config.get_missing_config())}"
            )
        return cls(client=client, **config.get_provider_config())

    @property
    def name(self) -> str:
        return "openai" if is_official_openai_endpoint(self._base_url) else "openai-compatible"

    @property
    def model(self) -> str:
        return self._model

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for a list of texts, batching requests."""
        if not texts:
            return []

        validated = validate_text_input(texts)
        vectors: list[list[float]] = []
        try:
            for start in range(0, len(validated), self._batch_size):
                batch = validated[start : start + self._batch_size]
                vectors.extend(await self._embed_batch(batch))
        except Exception as e:
            logger.error(f"[Embedding-Provider] Failed to generate embeddings: {e}")
            raise

        dims = {len(vector) for vector in vectors}
        if len(dims) > 1:
            raise EmbeddingDimensionError(
                f"Inconsistent embedding dimensions in response: {sorted(dims)}"
            )
        return vectors

    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        payload = {"model": self._model, "input": texts}
        headers = build_request_headers(self._api_key)

        for attempt in range(self._retry_attempts):
            try:
                logger.debug(
                    f"Requesting {len(texts)} embeddings from {self._endpoint} "
                    f"(attempt {attempt + 1})"
                )
                response = await self._post(payload, headers)
                response.raise_for_status()
                body = response.json()
                vectors = parse_embedding_response(body, expected=len(texts))
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if (status == 429 or status >= 500) and attempt < self._retry_attempts - 1:
                    delay = self._retry_delay * (2**attempt)
                    logger.warning(
                        f"Embedding request returned {status}, retrying in {delay}s"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise EmbeddingProviderError(
                    f"Embedding request failed with HTTP {status}: "
                    f"{e.response.text[:200]}"
                ) from e
            except httpx.TransportError as e:
                if attempt < self._retry_attempts - 1:
                    logger.warning(
                        f"Connection error, retrying in {self._retry_delay}s: {e}"
                    )
                    await asyncio.sleep(self._retry_delay)
                    continue
                raise EmbeddingProviderError(f"Embedding request failed: {e}") from e

            self._requests_made += 1
            self._embeddings_generated += len(vectors)
            usage = body.get("usage") if isinstance(body, dict) else None
            if isinstance(usage, dict):
                total_tokens = usage.get("total_tokens")
                if isinstance(total_tokens, int):
                    self._tokens_used += total_tokens
            return vectors

        raise EmbeddingProviderError(
            f"Failed to generate embeddings after {self._retry_attempts} attempts"
        )

    async def _post(self, payload: dict[str, Any], headers: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(
                self._endpoint, json=payload, headers=headers, timeout=self._timeout
            )
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(self._endpoint, json=payload, headers=headers)

    def get_usage_stats(self) -> dict[str, Any]:
        """Get usage statistics."""
        return get_usage_stats_dict(
            self._requests_made, self._tokens_used, self._embeddings_generated
        )

    def reset_usage_stats(self) -> None:
        """Reset usage statistics."""
        self._requests_made = 0
        self._tokens_used = 0
        self._embeddings_generated = 0


def create_embedding_provider(
    api_base: str | None,
    api_key: str | None,
    model: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> OpenAICompatibleEmbeddingProvider | None:
    """Build a provider from per-request credentials.

    Returns None when either credential is blank, which disables the
    embedding path without error.
    """
    if not (api_base or "").strip() or not (api_key or "").strip():
        return None
    config = EmbeddingConfig.from_overrides(api_base=api_base, api_key=api_key)
    if model:
        config = config.model_copy(update={"model": model})
    if not config.is_provider_configured():
        return None
    return OpenAICompatibleEmbeddingProvider.from_config(config, client=client)
