"""
pgvector Memory Store

PostgreSQL + pgvector adapter built on SQLAlchemy's async engine (asyncpg).

The predicate tree is lowered into a parameterized WHERE clause. Candidates
are ordered by the canonical score expression

    (1 - (embedding <=> :query_vec))
      + CASE WHEN category = :boost_category THEN :category_weight ELSE 0 END
      + :tag_weight * cardinality(ARRAY(tags ∩ :boost_tags))

which is the same formula the ranker applies after fetch.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from ..common.errors import StoreError
from ..common.schemas import MemoryRecord
from ..retriever.predicates import (
    And,
    BoostSpec,
    CategoryEquals,
    DateRange,
    EmbeddingPresent,
    Predicate,
    TagsOverlap,
)
from .base import Candidate, MemoryStore

logger = logging.getLogger("secondbrain.store.pgvector_store")

MEMORY_COLUMNS = (
    "id, raw_content, structured_content, category, tags, embedding::text AS embedding, "
    "source, source_id, memory_date, due_date, received_date, "
    "memory_date_formatted, due_date_formatted, received_date_formatted, "
    "created_at, updated_at"
)

# Only these column names may be interpolated into SQL.
_DATE_KEY_COLUMNS = {
    "memory_date_formatted",
    "due_date_formatted",
    "received_date_formatted",
}


def vector_literal(vector: List[float]) -> str:
    """pgvector text form: '[0.1,0.2,...]'"""
    return "[" + ",".join(repr(float(v)) for v in vector) + "]"


def lower_predicate(predicate: Predicate, params: Dict[str, Any]) -> str:
    """
    Lower a predicate tree into a SQL boolean expression.

    Bind values are added to `params` under generated names.
    """
    if isinstance(predicate, EmbeddingPresent):
        return "embedding IS NOT NULL"

    if isinstance(predicate, DateRange):
        column = predicate.field.formatted
        if column not in _DATE_KEY_COLUMNS:
            raise StoreError(f"Unknown date column: {column}")
        index = len(params)
        params[f"p{index}_start"] = predicate.start_key
        params[f"p{index}_end"] = predicate.end_key
        return f"({column} >= :p{index}_start AND {column} <= :p{index}_end)"

    if isinstance(predicate, CategoryEquals):
        name = f"p{len(params)}_category"
        params[name] = predicate.category
        return f"category = :{name}"

    if isinstance(predicate, TagsOverlap):
        name = f"p{len(params)}_tags"
        params[name] = list(predicate.tags)
        return f"tags && CAST(:{name} AS text[])"

    if isinstance(predicate, And):
        if not predicate.clauses:
            return "TRUE"
        return " AND ".join(lower_predicate(clause, params) for clause in predicate.clauses)

    raise StoreError(f"Unsupported predicate: {type(predicate).__name__}")


def build_query(
    predicate: Predicate,
    vector: List[float],
    boosts: Optional[BoostSpec],
    limit: int,
) -> Tuple[str, Dict[str, Any]]:
    """Build the candidate query SQL and its bind parameters."""
    boost = boosts or BoostSpec()
    params: Dict[str, Any] = {}
    where = lower_predicate(predicate, params)

    params.update({
        "query_vec": vector_literal(vector),
        "boost_category": boost.category,
        "boost_tags": list(boost.tags),
        "category_weight": boost.weights.category,
        "tag_weight": boost.weights.tag,
        "limit": limit,
    })

    distance = "(embedding <=> CAST(:query_vec AS vector))"
    category_boost = (
        "CASE WHEN CAST(:boost_category AS text) IS NOT NULL AND category = :boost_category "
        "THEN CAST(:category_weight AS float8) ELSE 0 END"
    )
    tag_boost = (
        "CAST(:tag_weight AS float8) * COALESCE(cardinality(ARRAY("
        "SELECT unnest(tags) INTERSECT SELECT unnest(CAST(:boost_tags AS text[])))), 0)"
    )

    sql = (
        f"SELECT {MEMORY_COLUMNS}, {distance} AS distance "
        f"FROM memories WHERE {where} "
        f"ORDER BY ((1 - {distance}) + {category_boost} + {tag_boost}) DESC, distance ASC, id ASC "
        f"LIMIT :limit"
    )
    return sql, params


def _parse_embedding(value: Any) -> Optional[List[float]]:
    if value is None:
        return None
    if isinstance(value, str):
        return [float(v) for v in json.loads(value)]
    return [float(v) for v in value]


def row_to_record(row: Dict[str, Any]) -> MemoryRecord:
    data = dict(row)
    data.pop("distance", None)
    data["embedding"] = _parse_embedding(data.get("embedding"))
    if isinstance(data.get("structured_content"), str):
        data["structured_content"] = json.loads(data["structured_content"])
    data["tags"] = list(data.get("tags") or [])
    data["id"] = str(data["id"])
    return MemoryRecord.model_validate(data)


class PgVectorMemoryStore(MemoryStore):
    """
    Memory store on PostgreSQL with the pgvector extension.

    Usage:
        store = PgVectorMemoryStore("postgresql+asyncpg://user:pw@host/db")
        candidates = await store.query(predicate, vector, boosts, limit=60)
        await store.close()
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        engine: Optional[AsyncEngine] = None,
        dimensions: Optional[int] = None,
    ):
        if engine is None:
            if not database_url:
                raise StoreError("database_url is required for the pgvector store")
            if database_url.startswith("postgresql://"):
                database_url = "postgresql+asyncpg://" + database_url[len("postgresql://"):]
            engine = create_async_engine(database_url, echo=False)
        self._engine = engine
        self._session = async_sessionmaker(engine, expire_on_commit=False)
        self._dimensions = dimensions

    async def _fetch(self, sql: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            async with self._session() as session:
                result = await session.execute(text(sql), params)
                return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            logger.error("pgvector query failed: %s", e)
            raise StoreError(f"Database query failed: {e}") from e

    async def query(
        self,
        predicate: Predicate,
        vector: List[float],
        boosts: Optional[BoostSpec] = None,
        limit: int = 20,
    ) -> List[Candidate]:
        if self._dimensions is not None and len(vector) != self._dimensions:
            raise StoreError(
                f"Query vector dimension mismatch: expected {self._dimensions}, got {len(vector)}"
            )
        sql, params = build_query(predicate, vector, boosts, limit)
        rows = await self._fetch(sql, params)
        return [Candidate(record=row_to_record(row), distance=float(row["distance"])) for row in rows]

    async def get(self, memory_id: str) -> Optional[MemoryRecord]:
        rows = await self._fetch(
            f"SELECT {MEMORY_COLUMNS} FROM memories WHERE id = CAST(:id AS uuid)",
            {"id": memory_id},
        )
        return row_to_record(rows[0]) if rows else None

    async def create(self, record: MemoryRecord) -> MemoryRecord:
        if record.embedding and self._dimensions is not None and len(record.embedding) != self._dimensions:
            raise StoreError(
                f"Embedding dimension mismatch: expected {self._dimensions}, got {len(record.embedding)}"
            )
        params = record.model_dump()
        params["embedding"] = vector_literal(record.embedding) if record.embedding else None
        params["structured_content"] = json.dumps(record.structured_content) if record.structured_content else None
        sql = (
            "INSERT INTO memories (id, raw_content, structured_content, category, tags, embedding, "
            "source, source_id, memory_date, due_date, received_date, "
            "memory_date_formatted, due_date_formatted, received_date_formatted, created_at, updated_at) "
            "VALUES (CAST(:id AS uuid), :raw_content, CAST(:structured_content AS jsonb), :category, "
            "CAST(:tags AS text[]), CAST(:embedding AS vector), :source, :source_id, "
            ":memory_date, :due_date, :received_date, "
            ":memory_date_formatted, :due_date_formatted, :received_date_formatted, :created_at, :updated_at)"
        )
        try:
            async with self._session() as session:
                await session.execute(text(sql), params)
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Insert failed: {e}") from e
        return record

    async def delete(self, memory_id: str) -> bool:
        try:
            async with self._session() as session:
                result = await session.execute(
                    text("DELETE FROM memories WHERE id = CAST(:id AS uuid)"), {"id": memory_id}
                )
                await session.commit()
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise StoreError(f"Delete failed: {e}") from e

    async def list_categories(self) -> List[str]:
        rows = await self._fetch("SELECT name FROM categories ORDER BY name", {})
        return [row["name"] for row in rows]

    async def list_distinct_tags(self) -> List[str]:
        rows = await self._fetch(
            "SELECT DISTINCT unnest(tags) AS tag FROM memories WHERE tags IS NOT NULL ORDER BY tag",
            {},
        )
        return [row["tag"] for row in rows]

    async def close(self) -> None:
        await self._engine.dispose()
