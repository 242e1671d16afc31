"""
Second Brain Retrieval Core

Hybrid retrieval and ranking over personal memories.

Philosophy:
- Dates exclude: a resolved date phrase is a hard retrieval predicate
- Categories and tags re-rank: they are additive boosts, never filters
- Vector similarity always contributes to the final order

Usage:
    from secondbrain.common import load_config, EmbeddingService
    from secondbrain.retriever import QueryAnalyzer, SearchOrchestrator
    from secondbrain.store import InMemoryMemoryStore
"""

__version__ = "0.1.0"
