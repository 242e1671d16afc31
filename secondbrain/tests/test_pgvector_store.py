"""Tests for the pgvector adapter's SQL lowering (no database required)."""

from datetime import datetime

import pytest


class TestLowerPredicate:

    def test_embedding_and_date_range(self):
        from secondbrain.common.schemas import DateField
        from secondbrain.retriever.predicates import DateRange, EmbeddingPresent, all_of
        from secondbrain.store.pgvector_store import lower_predicate

        params = {}
        sql = lower_predicate(
            all_of(EmbeddingPresent(), DateRange(DateField.DUE, datetime(1970, 1, 1), datetime(2026, 10, 14, 15, 30))),
            params,
        )

        assert sql == (
            "embedding IS NOT NULL AND "
            "(due_date_formatted >= :p0_start AND due_date_formatted <= :p0_end)"
        )
        assert params == {"p0_start": "1970-01-01", "p0_end": "2026-10-14"}

    def test_category_and_tags(self):
        from secondbrain.retriever.predicates import CategoryEquals, TagsOverlap, all_of
        from secondbrain.store.pgvector_store import lower_predicate

        params = {}
        sql = lower_predicate(all_of(CategoryEquals("Task"), TagsOverlap(("urgent", "work"))), params)

        assert "category = :p0_category" in sql
        assert "tags && CAST(:p1_tags AS text[])" in sql
        assert params["p0_category"] == "Task"
        assert params["p1_tags"] == ["urgent", "work"]

    def test_empty_conjunction(self):
        from secondbrain.retriever.predicates import And
        from secondbrain.store.pgvector_store import lower_predicate

        assert lower_predicate(And(()), {}) == "TRUE"

    def test_unknown_predicate(self):
        from secondbrain.common.errors import StoreError
        from secondbrain.store.pgvector_store import lower_predicate

        with pytest.raises(StoreError):
            lower_predicate("not a predicate", {})


class TestBuildQuery:

    def test_order_by_uses_boost_expression(self):
        from secondbrain.retriever.predicates import BoostSpec, EmbeddingPresent
        from secondbrain.store.pgvector_store import build_query

        sql, params = build_query(
            EmbeddingPresent(), [0.5, -0.25], BoostSpec(category="Meeting", tags=("urgent",)), limit=60,
        )

        order_by = sql.split("ORDER BY", 1)[1]
        assert "category = :boost_category" in order_by
        assert "INTERSECT" in order_by
        assert "CAST(:tag_weight AS float8)" in order_by
        assert "embedding IS NOT NULL" in sql
        assert sql.endswith("LIMIT :limit")
        assert params["query_vec"] == "[0.5,-0.25]"
        assert params["boost_category"] == "Meeting"
        assert params["boost_tags"] == ["urgent"]
        assert params["category_weight"] == 3.0
        assert params["tag_weight"] == 1.5
        assert params["limit"] == 60

    def test_no_boosts(self):
        from secondbrain.retriever.predicates import EmbeddingPresent
        from secondbrain.store.pgvector_store import build_query

        _, params = build_query(EmbeddingPresent(), [1.0], None, limit=3)

        assert params["boost_category"] is None
        assert params["boost_tags"] == []


class TestRowMapping:

    def test_row_to_record(self):
        from secondbrain.store.pgvector_store import row_to_record

        row = {
            "id": "7f1c9c1e-0000-4000-8000-000000000001",
            "raw_content": "Call with Sam",
            "structured_content": '{"title": "Sam"}',
            "category": "Meeting",
            "tags": ["work"],
            "embedding": "[0.1,0.2,0.3]",
            "source": "slack",
            "source_id": None,
            "memory_date": datetime(2026, 10, 9, 14, 0),
            "due_date": None,
            "received_date": None,
            "memory_date_formatted": "2026-10-09",
            "due_date_formatted": None,
            "received_date_formatted": None,
            "created_at": datetime(2026, 10, 9, 14, 5),
            "updated_at": datetime(2026, 10, 9, 14, 5),
            "distance": 0.2,
        }

        memory = row_to_record(row)

        assert memory.embedding == pytest.approx([0.1, 0.2, 0.3])
        assert memory.structured_content == {"title": "Sam"}
        assert memory.memory_date_formatted == "2026-10-09"


class TestConstruction:

    def test_requires_database_url(self):
        from secondbrain.common.errors import StoreError
        from secondbrain.store.pgvector_store import PgVectorMemoryStore

        with pytest.raises(StoreError):
            PgVectorMemoryStore()
