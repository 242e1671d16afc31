"""
Retriever - Hybrid Memory Search

Finds memories for a free-text query by combining structured intent with
vector similarity.

Key Components:
- DateExpressionResolver: Date phrases → concrete ranges
- QueryAnalyzer: Extracts date phrase, category and tags
- Ranker: Similarity + category/tag boosts
- SearchOrchestrator: Runs the pipeline end to end

Pipeline:
1. Analyze the query against the live catalog
2. Resolve the date phrase into a hard range predicate
3. Embed the residual text
4. Query the store (date filter hard, category/tag boosts soft)
5. Rank and truncate
"""

from .catalog import CatalogProvider, StaticCatalogProvider, StoreCatalogProvider
from .date_resolver import DATE_PATTERNS, DateExpressionResolver, DatePattern
from .predicates import BoostSpec, BoostWeights, DateRange, compute_boosts
from .query_processor import QueryAnalysis, QueryAnalyzer, SearchType
from .ranker import Ranker, ScoredResult, SearchFilters
from .searcher import SearchOrchestrator, SearchResponse, format_context, search_with_fallback

__all__ = [
    "CatalogProvider",
    "StaticCatalogProvider",
    "StoreCatalogProvider",
    "DATE_PATTERNS",
    "DateExpressionResolver",
    "DatePattern",
    "BoostSpec",
    "BoostWeights",
    "DateRange",
    "compute_boosts",
    "QueryAnalysis",
    "QueryAnalyzer",
    "SearchType",
    "Ranker",
    "ScoredResult",
    "SearchFilters",
    "SearchOrchestrator",
    "SearchResponse",
    "format_context",
    "search_with_fallback",
]
