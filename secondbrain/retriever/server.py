"""
Search Server

FastAPI server exposing hybrid memory search over HTTP.

Endpoints:
- POST /search: Smart search (with the degenerate-result fallback)
- POST /search/analyze: Query analysis only, no embedding or store access
- GET /search/suggestions: Categories and popular tags for query hints
- GET /health: Health check

Provider and store failures are returned as a generic 502 "search failed";
details go to the log only.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .. import __version__
from ..common.config import SecondBrainConfig, ensure_directories, load_config
from ..common.embedding_service import EmbeddingService, get_embedding_service
from ..common.errors import SearchError
from ..store import MemoryStore, create_store
from .catalog import StoreCatalogProvider
from .date_resolver import DateExpressionResolver
from .predicates import BoostWeights
from .query_processor import QueryAnalyzer
from .ranker import Ranker
from .searcher import SearchOrchestrator, search_with_fallback

logger = logging.getLogger("secondbrain.retriever.server")

MAX_SUGGESTED_TAGS = 20


# Global state
config: Optional[SecondBrainConfig] = None
store: Optional[MemoryStore] = None
catalog: Optional[StoreCatalogProvider] = None
analyzer: Optional[QueryAnalyzer] = None
orchestrator: Optional[SearchOrchestrator] = None


def build_pipeline(
    cfg: SecondBrainConfig,
    memory_store: Optional[MemoryStore] = None,
    embedding_service: Optional[EmbeddingService] = None,
) -> SearchOrchestrator:
    """Wire the search pipeline from config; injected parts take precedence."""
    store = memory_store if memory_store is not None else create_store(cfg)
    catalog = StoreCatalogProvider(store, ttl_seconds=cfg.catalog.ttl_seconds)

    embedding = embedding_service if embedding_service is not None else get_embedding_service(cfg.embedding)

    resolver = DateExpressionResolver()
    analyzer = QueryAnalyzer(catalog, resolver=resolver)
    orchestrator = SearchOrchestrator(
        analyzer=analyzer,
        embedding=embedding,
        store=store,
        ranker=Ranker(BoostWeights(category=cfg.search.category_boost, tag=cfg.search.tag_boost)),
        resolver=resolver,
        overfetch_factor=cfg.search.overfetch_factor,
        overfetch_ceiling=cfg.search.overfetch_ceiling,
    )
    logger.info(
        "Search pipeline ready (store=%s, embedding=%s/%s)",
        type(store).__name__, embedding.provider, embedding.model,
    )
    return orchestrator


def init_components(
    cfg: SecondBrainConfig,
    memory_store: Optional[MemoryStore] = None,
    embedding_service: Optional[EmbeddingService] = None,
) -> SearchOrchestrator:
    """Build the pipeline and publish it to the module globals the endpoints read."""
    global config, store, catalog, analyzer, orchestrator

    orchestrator = build_pipeline(cfg, memory_store=memory_store, embedding_service=embedding_service)
    config = cfg
    store = orchestrator.store
    analyzer = orchestrator.analyzer
    catalog = analyzer.catalog
    return orchestrator


def reset_components() -> None:
    global config, store, catalog, analyzer, orchestrator
    config = store = catalog = analyzer = orchestrator = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize components on startup"""
    logger.info("Starting up...")
    if orchestrator is None:
        ensure_directories()
        init_components(load_config())

    yield

    logger.info("Shutting down...")
    if store is not None:
        await store.close()


app = FastAPI(
    title="Second Brain Search",
    description="Hybrid date/category/tag + vector search over memories",
    version=__version__,
    lifespan=lifespan,
)


# =============================================================================
# Request/Response Models
# =============================================================================

class SearchRequest(BaseModel):
    """Smart search request"""
    query: str = Field(..., description="Free-text query")
    limit: Optional[int] = Field(default=None, ge=1, le=100)
    threshold: Optional[float] = Field(default=None, ge=-1.0, le=1.0)


class AnalyzeRequest(BaseModel):
    query: str


# =============================================================================
# Endpoints
# =============================================================================

def _require_pipeline() -> SearchOrchestrator:
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Search pipeline not initialized")
    return orchestrator


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "search",
        "initialized": orchestrator is not None,
        "store": type(store).__name__ if store is not None else None,
        "embedding_provider": config.embedding.provider if config else None,
    }


@app.post("/search")
async def search(request: SearchRequest):
    """
    Smart search.

    When nothing survives and no date filter was active, the search is
    retried once with threshold 0 and limit 1.
    """
    pipeline = _require_pipeline()
    if not request.query or not request.query.strip():
        raise HTTPException(status_code=400, detail="Search query is required")

    limit = request.limit or config.search.default_limit
    threshold = request.threshold if request.threshold is not None else config.search.threshold

    try:
        response = await search_with_fallback(pipeline, request.query, limit=limit, threshold=threshold)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SearchError as e:
        logger.error("Search failed for %r: %s", request.query, e)
        raise HTTPException(status_code=502, detail="search failed")

    data = response.to_dict()
    data["query"] = request.query
    return data


@app.post("/search/analyze")
async def analyze(request: AnalyzeRequest):
    """Show how a query would be interpreted."""
    _require_pipeline()
    if not request.query or not request.query.strip():
        raise HTTPException(status_code=400, detail="Search query is required")

    result = await analyzer.analyze(request.query)
    date_range = analyzer.resolver.resolve(result.date_phrase, context=request.query)
    data = result.to_dict()
    data["date_range"] = date_range.to_dict() if date_range else None
    return data


@app.get("/search/suggestions")
async def suggestions():
    """Categories and popular tags, for query hints in a UI."""
    _require_pipeline()
    try:
        categories, tags = await catalog.snapshot()
    except SearchError as e:
        logger.error("Catalog lookup failed: %s", e)
        raise HTTPException(status_code=502, detail="search failed")
    return {
        "categories": categories,
        "popular_tags": tags[:MAX_SUGGESTED_TAGS],
    }


# =============================================================================
# CLI Entry Point
# =============================================================================

def run_server():
    """Run the search server"""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cfg = load_config()
    logger.info("Starting server on %s:%d", cfg.server.host, cfg.server.port)
    uvicorn.run(
        "secondbrain.retriever.server:app",
        host=cfg.server.host,
        port=cfg.server.port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
