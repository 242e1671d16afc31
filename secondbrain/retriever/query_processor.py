"""
Query Processor

Analyzes a free-text query into structured intent: an embedded date phrase,
at most one category from the live catalog, any number of known tags, and
the residual semantic text that gets embedded.

Extraction order is fixed: date phrase, then category, then tags. Each
matched word is stripped before the next stage runs.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .catalog import CatalogProvider
from .date_resolver import DateExpressionResolver
from .patterns import (
    CATEGORY_SYNONYMS,
    TAG_SYNONYMS,
    collapse_whitespace,
    match_with_synonyms,
    strip_term,
)

logger = logging.getLogger("secondbrain.retriever.query_processor")


class SearchType(str, Enum):
    """Informational label for what the analyzer found; never affects ranking"""
    SEMANTIC = "semantic"  # nothing structured
    HYBRID = "hybrid"  # date phrase only
    FILTERED = "filtered"  # category and/or tags


@dataclass
class QueryAnalysis:
    """Structured view of a user query"""
    original_query: str
    cleaned_query: str
    date_phrase: Optional[str] = None
    matched_category: Optional[str] = None
    matched_tags: List[str] = field(default_factory=list)
    search_type: SearchType = SearchType.SEMANTIC

    @property
    def semantic_text(self) -> str:
        """Text to embed: the cleaned query, or the original if nothing is left"""
        return self.cleaned_query or self.original_query

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original_query": self.original_query,
            "cleaned_query": self.cleaned_query,
            "date_phrase": self.date_phrase,
            "matched_category": self.matched_category,
            "matched_tags": list(self.matched_tags),
            "search_type": self.search_type.value,
        }


def _strip_phrase(text: str, phrase: str) -> str:
    regex = re.compile(r"\s+".join(re.escape(part) for part in phrase.split()), re.IGNORECASE)
    while regex.search(text):
        text = regex.sub(" ", text)
    return text


class QueryAnalyzer:
    """
    Extracts date, category and tag intent from a query.

    The category and tag vocabularies come from the catalog at call time,
    so categories created by users are recognized without a restart.
    """

    def __init__(
        self,
        catalog: CatalogProvider,
        resolver: Optional[DateExpressionResolver] = None,
    ):
        """
        Args:
            catalog: Source of live category names and distinct tags
            resolver: Date resolver whose pattern bank finds the date phrase
        """
        self._catalog = catalog
        self._resolver = resolver or DateExpressionResolver()

    @property
    def catalog(self) -> CatalogProvider:
        return self._catalog

    @property
    def resolver(self) -> DateExpressionResolver:
        return self._resolver

    async def analyze(self, query: str) -> QueryAnalysis:
        """
        Analyze a user query.

        Args:
            query: Raw user query string

        Returns:
            QueryAnalysis with the extracted parts and the cleaned query
        """
        categories, tags = await self._catalog.snapshot()
        return self.analyze_with(query, categories, tags)

    def analyze_with(self, query: str, categories: List[str], tags: List[str]) -> QueryAnalysis:
        """Synchronous analysis against an explicit catalog snapshot."""
        remaining = query or ""

        # 1. date phrase
        date_phrase = self._resolver.find_phrase(remaining)
        if date_phrase:
            remaining = _strip_phrase(remaining, date_phrase)

        # 2. category: first match in catalog order wins
        matched_category = None
        for category in categories:
            term = match_with_synonyms(remaining, category, CATEGORY_SYNONYMS)
            if term:
                matched_category = category
                remaining = strip_term(remaining, term)
                break

        # 3. tags: all tested against the same post-category text
        tag_text = remaining
        matched_tags: List[str] = []
        for tag in tags:
            if tag in matched_tags:
                continue
            term = match_with_synonyms(tag_text, tag, TAG_SYNONYMS)
            if term:
                matched_tags.append(tag)
                remaining = strip_term(remaining, term)

        cleaned = collapse_whitespace(remaining)

        if matched_category or matched_tags:
            search_type = SearchType.FILTERED
        elif date_phrase:
            search_type = SearchType.HYBRID
        else:
            search_type = SearchType.SEMANTIC

        analysis = QueryAnalysis(
            original_query=query,
            cleaned_query=cleaned,
            date_phrase=date_phrase,
            matched_category=matched_category,
            matched_tags=matched_tags,
            search_type=search_type,
        )
        logger.info(
            "Query analysis: type=%s date=%r category=%r tags=%s cleaned=%r",
            search_type.value, date_phrase, matched_category, matched_tags, cleaned,
        )
        return analysis
