"""
Embedding Service

Turns query text into a fixed-length vector through a remote provider.
Supports the OpenAI embeddings API and a local Ollama server.

Every call carries an explicit timeout and is never retried here: on timeout
or provider error the caller receives a ProviderError and fails fast.
"""

import asyncio
import logging
from typing import List, Optional

import httpx
import numpy as np

from .errors import ProviderError

logger = logging.getLogger("secondbrain.common.embedding_service")

MAX_INPUT_CHARS = 8000


class EmbeddingService:
    """
    Async embedding client.

    Providers:
    - openai: text-embedding-3-* via the OpenAI SDK (max_retries=0)
    - ollama: POST {ollama_url}/api/embeddings via httpx
    """

    def __init__(
        self,
        provider: str = "openai",
        model: str = "text-embedding-3-small",
        dimensions: Optional[int] = 1536,
        timeout: float = 15.0,
        api_key: Optional[str] = None,
        ollama_url: str = "http://localhost:11434",
        client=None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize embedding service.

        Args:
            provider: "openai" or "ollama"
            model: Provider model name
            dimensions: Expected vector length (None skips the check)
            timeout: Per-call timeout in seconds
            api_key: OpenAI API key
            ollama_url: Base URL of the Ollama server
            client: Pre-built AsyncOpenAI client (tests)
            http_client: Pre-built httpx.AsyncClient (tests)
        """
        self.provider = (provider or "openai").lower()
        self.model = model
        self.dimensions = dimensions
        self.timeout = timeout
        self._client = client
        self._http = http_client

        if self.provider == "openai":
            if self._client is None and api_key:
                try:
                    from openai import AsyncOpenAI

                    self._client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
                except ImportError:
                    logger.warning("openai package not installed")
            if self._client is None:
                logger.info("OpenAI API key not provided, embedding service unavailable")
        elif self.provider == "ollama":
            if self._http is None:
                self._http = httpx.AsyncClient(base_url=ollama_url.rstrip("/"), timeout=timeout)
        else:
            raise ValueError(f"Unsupported embedding provider: {self.provider}")

    @property
    def is_available(self) -> bool:
        """Check if embedding service is available"""
        if self.provider == "openai":
            return self._client is not None
        return self._http is not None

    async def embed(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: String to embed

        Returns:
            Embedding vector

        Raises:
            ValueError: text is empty
            ProviderError: network, auth, rate-limit, timeout or shape failure
        """
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")
        if not self.is_available:
            raise ProviderError("Embedding provider is not configured", provider=self.provider)

        text = text[:MAX_INPUT_CHARS]
        try:
            if self.provider == "openai":
                vector = await asyncio.wait_for(self._embed_openai(text), timeout=self.timeout)
            else:
                vector = await asyncio.wait_for(self._embed_ollama(text), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error("Embedding call timed out after %.1fs (%s)", self.timeout, self.provider)
            raise ProviderError(
                f"Embedding call timed out after {self.timeout}s", provider=self.provider
            ) from e

        if self.dimensions and len(vector) != self.dimensions:
            raise ProviderError(
                f"Embedding dimension mismatch: expected {self.dimensions}, got {len(vector)}",
                provider=self.provider,
            )
        return vector

    async def _embed_openai(self, text: str) -> List[float]:
        from openai import OpenAIError

        kwargs = {"model": self.model, "input": text}
        if self.dimensions:
            kwargs["dimensions"] = self.dimensions
        try:
            response = await self._client.embeddings.create(**kwargs)
        except OpenAIError as e:
            logger.error("OpenAI embedding failed: %s", e)
            raise ProviderError(f"Failed to generate embedding: {e}", provider="openai") from e
        return [float(v) for v in response.data[0].embedding]

    async def _embed_ollama(self, text: str) -> List[float]:
        try:
            response = await self._http.post(
                "/api/embeddings",
                json={"model": self.model, "prompt": text},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Ollama embedding failed: %s", e)
            raise ProviderError(f"Failed to generate embedding with Ollama: {e}", provider="ollama") from e

        embedding = data.get("embedding")
        if not embedding:
            raise ProviderError("Ollama returned no embedding", provider="ollama")
        return [float(v) for v in embedding]

    async def aclose(self) -> None:
        """Release the underlying HTTP connections."""
        if self._http is not None:
            await self._http.aclose()
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()

    @staticmethod
    def cosine_similarity(vec1: List[float], vec2: List[float]) -> float:
        """
        Compute cosine similarity between two vectors.

        Args:
            vec1: First embedding vector
            vec2: Second embedding vector

        Returns:
            Cosine similarity in [-1, 1] (0.0 when either vector is zero)
        """
        v1 = np.asarray(vec1, dtype=float)
        v2 = np.asarray(vec2, dtype=float)

        if v1.shape != v2.shape:
            raise ValueError(f"Vector dimension mismatch: {v1.shape} vs {v2.shape}")

        norm = float(np.linalg.norm(v1) * np.linalg.norm(v2))
        if norm == 0.0:
            return 0.0
        return float(np.dot(v1, v2) / norm)


# Module-level singleton getter
_service_instance: Optional[EmbeddingService] = None


def get_embedding_service(config=None) -> EmbeddingService:
    """
    Get the shared EmbeddingService instance.

    Args:
        config: EmbeddingConfig used on first construction

    Returns:
        EmbeddingService instance
    """
    global _service_instance

    if _service_instance is None:
        if config is None:
            _service_instance = EmbeddingService()
        else:
            _service_instance = EmbeddingService(
                provider=config.provider,
                model=config.model,
                dimensions=config.dimensions,
                timeout=config.timeout,
                api_key=config.openai_api_key or None,
                ollama_url=config.ollama_url,
            )

    return _service_instance
