"""
Searcher

Runs the hybrid retrieval pipeline:

    analyze → resolve date → embed → store query → rank

Priority is Date > Category > Tag > Vector similarity. A resolved date range
is a hard predicate handed to the store, so out-of-range records are never
fetched. Category and tag matches only boost scores on top of whatever the
similarity query returned inside that window.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..common.embedding_service import EmbeddingService
from ..common.errors import SearchError, StoreError
from ..store.base import MemoryStore
from .date_resolver import DateExpressionResolver
from .predicates import EmbeddingPresent, all_of
from .query_processor import QueryAnalysis, QueryAnalyzer
from .ranker import Ranker, ScoredResult, SearchFilters, overfetch_size

logger = logging.getLogger("secondbrain.retriever.searcher")

DEFAULT_LIMIT = 20
DEFAULT_THRESHOLD = 0.5


@dataclass
class SearchResponse:
    """Ranked results plus the structured filters that produced them"""
    results: List[ScoredResult]
    filters: SearchFilters
    analysis: QueryAnalysis
    candidate_count: int = 0

    @property
    def date_filtered(self) -> bool:
        return self.filters.date_range is not None

    @property
    def category_filtered(self) -> bool:
        return self.filters.category is not None

    @property
    def tag_filtered(self) -> bool:
        return bool(self.filters.tags)

    @property
    def avg_score(self) -> float:
        if not self.results:
            return 0
        return round(sum(r.final_score for r in self.results) / len(self.results), 2)

    def metadata(self) -> Dict[str, Any]:
        return {
            "total": len(self.results),
            "date_filtered": self.date_filtered,
            "category_filtered": self.category_filtered,
            "tag_filtered": self.tag_filtered,
            "avg_score": self.avg_score,
        }

    def to_dict(self) -> Dict[str, Any]:
        analysis = self.analysis.to_dict()
        analysis["date_range"] = self.filters.date_range.to_dict() if self.filters.date_range else None
        return {
            "results": [r.to_dict() for r in self.results],
            "analysis": analysis,
            "metadata": self.metadata(),
        }


class SearchOrchestrator:
    """
    Hybrid search over a memory store.

    Errors:
    - ProviderError from the embedding call propagates unchanged
    - any store failure surfaces as StoreError
    - an unparseable date phrase is logged and the search runs unfiltered
    """

    def __init__(
        self,
        analyzer: QueryAnalyzer,
        embedding: EmbeddingService,
        store: MemoryStore,
        ranker: Optional[Ranker] = None,
        resolver: Optional[DateExpressionResolver] = None,
        overfetch_factor: int = 3,
        overfetch_ceiling: int = 100,
    ):
        """
        Args:
            analyzer: Extracts date/category/tag intent from the query
            embedding: Embeds the residual semantic text
            store: Vector store queried under the hard predicate
            ranker: Merges similarity with boosts (default weights 3.0/1.5)
            resolver: Turns the date phrase into a range (defaults to the analyzer's)
            overfetch_factor: Candidates fetched per requested result
            overfetch_ceiling: Upper bound on fetched candidates
        """
        self._analyzer = analyzer
        self._embedding = embedding
        self._store = store
        self._ranker = ranker or Ranker()
        self._resolver = resolver or analyzer.resolver
        self._overfetch_factor = overfetch_factor
        self._overfetch_ceiling = overfetch_ceiling

    @property
    def analyzer(self) -> QueryAnalyzer:
        return self._analyzer

    @property
    def store(self) -> MemoryStore:
        return self._store

    @property
    def embedding(self) -> EmbeddingService:
        return self._embedding

    async def search(
        self,
        query: str,
        limit: int = DEFAULT_LIMIT,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> SearchResponse:
        """
        Search memories for a free-text query.

        Args:
            query: User query
            limit: Maximum results returned
            threshold: Minimum similarity for results without a boost

        Returns:
            SearchResponse (an empty result list is a valid outcome)
        """
        if not query or not query.strip():
            raise ValueError("Query must not be empty")
        if limit < 1:
            raise ValueError("limit must be at least 1")

        analysis = await self._analyzer.analyze(query)
        date_range = self._resolver.resolve(analysis.date_phrase, context=query)

        filters = SearchFilters(
            category=analysis.matched_category,
            tags=list(analysis.matched_tags),
            date_range=date_range,
        )
        predicate = all_of(EmbeddingPresent(), date_range)
        boosts = filters.boost_spec(self._ranker.weights)

        vector = await self._embedding.embed(analysis.semantic_text)

        fetch_size = overfetch_size(limit, self._overfetch_factor, self._overfetch_ceiling)
        try:
            candidates = await self._store.query(predicate, vector, boosts=boosts, limit=fetch_size)
        except SearchError:
            raise
        except Exception as e:
            logger.error("Store query failed: %s", e, exc_info=True)
            raise StoreError(f"Store query failed: {e}") from e

        results = self._ranker.rank(candidates, filters, threshold=threshold, limit=limit)
        logger.info(
            "Search %r: %d candidates, %d results (date=%s category=%s tags=%s)",
            query, len(candidates), len(results),
            date_range is not None, filters.category, filters.tags,
        )
        return SearchResponse(
            results=results,
            filters=filters,
            analysis=analysis,
            candidate_count=len(candidates),
        )

    async def smart_search(
        self,
        user_query: str,
        limit: int = DEFAULT_LIMIT,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> Dict[str, Any]:
        """Search and return the {results, analysis, metadata} caller contract."""
        response = await self.search(user_query, limit=limit, threshold=threshold)
        return response.to_dict()


async def search_with_fallback(
    orchestrator: SearchOrchestrator,
    query: str,
    limit: int = DEFAULT_LIMIT,
    threshold: float = DEFAULT_THRESHOLD,
) -> SearchResponse:
    """
    Caller policy for degenerate results.

    When nothing survived and no date filter was active, retry once with
    threshold 0 and limit 1 so the caller still gets the single nearest
    memory. A date-filtered empty result is a real answer and is kept.
    """
    response = await orchestrator.search(query, limit=limit, threshold=threshold)
    if response.results or response.date_filtered:
        return response

    logger.info("No results for %r; retrying with threshold 0", query)
    return await orchestrator.search(query, limit=1, threshold=0)


def format_context(results: List[ScoredResult], max_chars: int = 500) -> str:
    """
    Render ranked memories as assistant context.

    Each entry carries "why this matched" badges derived from match_type.
    """
    if not results:
        return "No matching memories found."

    badges = {
        "date": "📅 date",
        "category": "📁 category",
        "tag": "🏷️ tag",
        "semantic": "🔍 semantic",
    }

    lines = [f"Found {len(results)} relevant memor{'y' if len(results) == 1 else 'ies'}:", ""]
    for i, result in enumerate(results, 1):
        record = result.record
        content = record.raw_content
        if len(content) > max_chars:
            content = content[:max_chars].rstrip() + "..."

        why = ", ".join(badges.get(reason, reason) for reason in result.match_reasons)
        lines.append(f"{i}. [{record.category}] {content}")
        if record.tags:
            lines.append(f"   Tags: {', '.join(record.tags)}")
        for date_field, label in (("memory_date", "Date"), ("due_date", "Due"), ("received_date", "Received")):
            value = getattr(record, date_field)
            if value is not None:
                lines.append(f"   {label}: {value.strftime('%Y-%m-%d')}")
        lines.append(f"   Score: {result.final_score:.2f} (why: {why})")
        lines.append("")

    return "\n".join(lines).rstrip()
