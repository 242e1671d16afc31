"""Tests for EmbeddingService (no network)."""

import asyncio
from types import SimpleNamespace

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock


def ollama_service(handler, dimensions=3, timeout=1.0):
    from secondbrain.common.embedding_service import EmbeddingService

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://ollama.test")
    return EmbeddingService(
        provider="ollama",
        model="nomic-embed-text",
        dimensions=dimensions,
        timeout=timeout,
        http_client=http,
    )


def openai_service(create, dimensions=3):
    from secondbrain.common.embedding_service import EmbeddingService

    client = MagicMock()
    client.embeddings.create = create
    return EmbeddingService(provider="openai", dimensions=dimensions, client=client)


class TestOllama:

    @pytest.mark.asyncio
    async def test_embed(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = request.content
            return httpx.Response(200, json={"embedding": [0.1, 0.2, 0.3]})

        service = ollama_service(handler)

        vector = await service.embed("budget review")

        assert vector == pytest.approx([0.1, 0.2, 0.3])
        assert seen["path"] == "/api/embeddings"
        assert b"budget review" in seen["body"]
        await service.aclose()

    @pytest.mark.asyncio
    async def test_http_error(self):
        from secondbrain.common.errors import ProviderError

        service = ollama_service(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(ProviderError) as exc_info:
            await service.embed("anything")

        assert exc_info.value.provider == "ollama"

    @pytest.mark.asyncio
    async def test_missing_embedding(self):
        from secondbrain.common.errors import ProviderError

        service = ollama_service(lambda request: httpx.Response(200, json={}))

        with pytest.raises(ProviderError):
            await service.embed("anything")

    @pytest.mark.asyncio
    async def test_timeout_fails_fast(self):
        from secondbrain.common.errors import ProviderError

        async def slow(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json={"embedding": [0.1, 0.2, 0.3]})

        service = ollama_service(slow, timeout=0.05)

        with pytest.raises(ProviderError, match="timed out"):
            await service.embed("anything")

    @pytest.mark.asyncio
    async def test_dimension_mismatch(self):
        from secondbrain.common.errors import ProviderError

        service = ollama_service(lambda request: httpx.Response(200, json={"embedding": [0.1, 0.2]}))

        with pytest.raises(ProviderError, match="dimension mismatch"):
            await service.embed("anything")


class TestOpenAI:

    @pytest.mark.asyncio
    async def test_embed_passes_dimensions(self):
        create = AsyncMock(return_value=SimpleNamespace(data=[SimpleNamespace(embedding=[1, 0, 0])]))
        service = openai_service(create)

        vector = await service.embed("hello")

        assert vector == [1.0, 0.0, 0.0]
        kwargs = create.await_args.kwargs
        assert kwargs["model"] == "text-embedding-3-small"
        assert kwargs["input"] == "hello"
        assert kwargs["dimensions"] == 3

    @pytest.mark.asyncio
    async def test_sdk_error_becomes_provider_error(self):
        import openai
        from secondbrain.common.errors import ProviderError

        service = openai_service(AsyncMock(side_effect=openai.OpenAIError("rate limited")))

        with pytest.raises(ProviderError) as exc_info:
            await service.embed("hello")

        assert exc_info.value.provider == "openai"

    def test_unavailable_without_key(self):
        from secondbrain.common.embedding_service import EmbeddingService

        service = EmbeddingService(provider="openai", api_key=None)

        assert service.is_available is False

    @pytest.mark.asyncio
    async def test_unavailable_raises(self):
        from secondbrain.common.embedding_service import EmbeddingService
        from secondbrain.common.errors import ProviderError

        service = EmbeddingService(provider="openai", api_key=None)

        with pytest.raises(ProviderError):
            await service.embed("hello")


class TestValidation:

    @pytest.mark.asyncio
    async def test_empty_text(self):
        service = openai_service(AsyncMock())

        with pytest.raises(ValueError):
            await service.embed("   ")

    def test_unsupported_provider(self):
        from secondbrain.common.embedding_service import EmbeddingService

        with pytest.raises(ValueError):
            EmbeddingService(provider="cohere")


class TestCosineSimilarity:

    def test_identical(self):
        from secondbrain.common.embedding_service import EmbeddingService

        assert EmbeddingService.cosine_similarity([1, 2, 3], [1, 2, 3]) == pytest.approx(1.0)

    def test_orthogonal(self):
        from secondbrain.common.embedding_service import EmbeddingService

        assert EmbeddingService.cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)

    def test_zero_vector(self):
        from secondbrain.common.embedding_service import EmbeddingService

        assert EmbeddingService.cosine_similarity([0, 0], [1, 1]) == 0.0

    def test_shape_mismatch(self):
        from secondbrain.common.embedding_service import EmbeddingService

        with pytest.raises(ValueError):
            EmbeddingService.cosine_similarity([1, 0], [1, 0, 0])
