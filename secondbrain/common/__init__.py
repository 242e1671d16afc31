"""
Second Brain Common Module

Shared infrastructure for the retriever and the store adapters.
"""

from .config import SecondBrainConfig, load_config
from .embedding_service import EmbeddingService, get_embedding_service
from .errors import SearchError, ProviderError, StoreError, DateParseError

__all__ = [
    "SecondBrainConfig",
    "load_config",
    "EmbeddingService",
    "get_embedding_service",
    "SearchError",
    "ProviderError",
    "StoreError",
    "DateParseError",
]
