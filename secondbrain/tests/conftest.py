"""Shared fixtures for the retrieval tests."""

import math
from datetime import datetime
from typing import List, Optional

import pytest

from secondbrain.common.embedding_service import EmbeddingService
from secondbrain.common.errors import ProviderError

# Wednesday
NOW = datetime(2026, 10, 14, 15, 30, 0)

QUERY_VECTOR = [1.0, 0.0, 0.0]


def vec(similarity: float) -> List[float]:
    """A unit vector whose cosine similarity with QUERY_VECTOR is `similarity`."""
    return [similarity, math.sqrt(max(0.0, 1.0 - similarity ** 2)), 0.0]


class FakeEmbeddingService(EmbeddingService):
    """Returns a fixed vector and records what was embedded."""

    def __init__(self, vector: Optional[List[float]] = None, error: Optional[Exception] = None):
        # Skip real __init__ to avoid provider setup
        self.provider = "fake"
        self.model = "fake-embedding"
        self.dimensions = 3
        self.timeout = 1.0
        self._vector = vector or list(QUERY_VECTOR)
        self._error = error
        self.calls: List[str] = []

    @property
    def is_available(self) -> bool:
        return True

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self._error is not None:
            raise self._error
        return list(self._vector)

    async def aclose(self) -> None:
        return None


@pytest.fixture
def fixed_clock():
    return lambda: NOW


@pytest.fixture
def fake_embedding():
    return FakeEmbeddingService()


@pytest.fixture
def failing_embedding():
    return FakeEmbeddingService(error=ProviderError("rate limited", provider="fake"))
