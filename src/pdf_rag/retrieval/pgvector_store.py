"""PostgreSQL + pgvector implementation of the vector-store abstraction.

The store talks to the database exclusively through two SQL functions so
that the same schema can be shared with other clients (e.g. Supabase RPC):

* ``insert_document(p_content text, p_metadata jsonb, p_embedding vector,
  p_id text)`` stores a row under the caller-assigned id and ignores an id
  that is already present, then returns the id.
* ``match_documents(query_embedding vector, match_count int, filter jsonb)``
  returns ``id, content, metadata, similarity`` ordered by cosine
  similarity.

Embeddings cross the wire as vector literals (``[0.1,0.2,...]``).
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from sqlalchemy import Engine, create_engine, text

from pdf_rag.errors import ConfigurationError
from pdf_rag.retrieval.base import VectorStoreBase
from pdf_rag.retrieval.models import Chunk, SimilarityResult, to_vector_literal

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

SCHEMA_SQL = """\
CREATE EXTENSION IF NOT EXISTS vector;

CREATE TABLE IF NOT EXISTS {table} (
    id text PRIMARY KEY DEFAULT gen_random_uuid()::text,
    seq bigserial,
    content text NOT NULL,
    metadata jsonb NOT NULL DEFAULT '{{}}'::jsonb,
    embedding vector({dimension}) NOT NULL
);

CREATE OR REPLACE FUNCTION insert_document(
    p_content text,
    p_metadata jsonb,
    p_embedding vector({dimension}),
    p_id text DEFAULT NULL
) RETURNS text
LANGUAGE plpgsql
AS $$
DECLARE
    v_id text := coalesce(p_id, gen_random_uuid()::text);
BEGIN
    INSERT INTO {table} (id, content, metadata, embedding)
    VALUES (v_id, p_content, p_metadata, p_embedding)
    ON CONFLICT (id) DO NOTHING;
    RETURN v_id;
END;
$$;

CREATE OR REPLACE FUNCTION match_documents(
    query_embedding vector({dimension}),
    match_count int DEFAULT 10,
    filter jsonb DEFAULT '{{}}'::jsonb
) RETURNS TABLE (id text, content text, metadata jsonb, similarity float)
LANGUAGE sql STABLE
AS $$
    SELECT d.id, d.content, d.metadata, 1 - (d.embedding <=> query_embedding) AS similarity
    FROM {table} d
    WHERE d.metadata @> filter
    ORDER BY d.embedding <=> query_embedding, d.seq
    LIMIT match_count;
$$;
"""


class PgVectorStore(VectorStoreBase):
    """Vector store on a Postgres database with the pgvector extension.

    Parameters
    ----------
    database_url:
        SQLAlchemy URL, e.g. ``postgresql+psycopg://user:pw@host/db``.
        Ignored when *engine* is given.
    table:
        Table holding the chunks (used by :meth:`count` and
        :meth:`create_schema`).
    engine:
        A ready SQLAlchemy engine.
    """

    def __init__(
        self,
        table: str = "documents",
        *,
        dimension: int,
        database_url: str = "",
        engine: Engine | None = None,
        **kwargs: Any,
    ) -> None:
        if not _IDENTIFIER.match(table):
            raise ConfigurationError(f"Invalid table name: {table!r}")
        super().__init__(table, dimension=dimension, **kwargs)
        if engine is None:
            if not database_url:
                raise ConfigurationError("database_url is required for the pgvector backend")
            engine = create_engine(database_url, pool_pre_ping=True)
            logger.info("pgvector engine configured for %s", database_url.split("@")[-1])
        self._engine = engine

    def create_schema(self) -> None:
        """Create the extension, table and SQL functions if missing."""
        ddl = SCHEMA_SQL.format(table=self.collection_name, dimension=self.dimension)
        with self._engine.begin() as conn:
            conn.exec_driver_sql(ddl)
        logger.info("pgvector schema ready (table=%s, dim=%d)", self.collection_name, self.dimension)

    # -- VectorStoreBase overrides --------------------------------------------

    def _insert(self, chunk_id: str, content: str, metadata: dict[str, Any], embedding: list[float]) -> None:
        stmt = text(
            "SELECT insert_document(:p_content, CAST(:p_metadata AS jsonb), "
            "CAST(:p_embedding AS vector), :p_id)"
        )
        params = {
            "p_content": content,
            "p_metadata": json.dumps(metadata, default=str),
            "p_embedding": to_vector_literal(embedding),
            "p_id": chunk_id,
        }
        with self._engine.begin() as conn:
            conn.execute(stmt, params)

    def _search(
        self,
        query_embedding: list[float],
        k: int,
        filter: dict[str, Any],
    ) -> list[SimilarityResult]:
        stmt = text(
            "SELECT id, content, metadata, similarity FROM match_documents("
            "CAST(:query_embedding AS vector), :match_count, CAST(:filter AS jsonb))"
        )
        params = {
            "query_embedding": to_vector_literal(query_embedding),
            "match_count": k,
            "filter": json.dumps(filter),
        }
        with self._engine.connect() as conn:
            rows = conn.execute(stmt, params).mappings().all()

        hits: list[SimilarityResult] = []
        for row in rows:
            metadata = row["metadata"]
            if isinstance(metadata, str):
                metadata = json.loads(metadata)
            chunk = Chunk(id=str(row["id"]), content=row["content"], metadata=metadata or {})
            hits.append(SimilarityResult(chunk=chunk, similarity=float(row["similarity"])))
        return hits

    def _count(self) -> int:
        with self._engine.connect() as conn:
            return int(conn.execute(text(f"SELECT count(*) FROM {self.collection_name}")).scalar_one())

    def verify_compatibility(self) -> None:
        def _stored_dims() -> int | None:
            stmt = text(f"SELECT vector_dims(embedding) FROM {self.collection_name} LIMIT 1")
            with self._engine.connect() as conn:
                return conn.execute(stmt).scalar_one_or_none()

        dims = self._guard("verify", _stored_dims)
        if dims is not None and dims != self.dimension:
            raise ConfigurationError(
                f"Table {self.collection_name!r} stores {dims}-dimensional vectors, "
                f"expected {self.dimension}; clear it before switching models"
            )
