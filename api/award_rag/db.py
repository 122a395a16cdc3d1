# db.py: insert award rows & embeddings in Postgres, query them back by vector similarity (pgvector).

import logging
from dataclasses import dataclass
from typing import List, Sequence

import psycopg
from psycopg import sql

from .records import AwardRecord
from .settings import Settings

logger = logging.getLogger(__name__)

TABLE = "awards"


# [0.012346, -0.001235, 0.999999] -> "[0.012346,-0.001235,0.999999]"
def vector_literal(vec: Sequence[float]) -> str:
    return "[" + ",".join(f"{x:.6f}" for x in vec) + "]"


@dataclass(frozen=True)
class VectorSearch:
    index: str = "award_embeddings_index"
    path: str = "award_embeddings"
    num_candidates: int = 200
    limit: int = 10

    @classmethod
    def from_settings(cls, s: Settings) -> "VectorSearch":
        return cls(
            index=s.vector_index,
            path=s.vector_path,
            num_candidates=s.vector_num_candidates,
            limit=s.vector_limit,
        )


@dataclass(frozen=True)
class SearchHit:
    id: int
    description: str
    score: float


class AwardStore:
    """Award documents in one Postgres table, searched through an HNSW cosine index."""

    def __init__(self, conn: psycopg.Connection, search: VectorSearch = VectorSearch(), dimensions: int = 1536):
        self.conn = conn
        self.search_params = search
        self.dimensions = dimensions

    @classmethod
    def connect(cls, s: Settings) -> "AwardStore":
        # autocommit: every transaction() block below commits on its own
        conn = psycopg.connect(s.dsn, autocommit=True)
        logger.debug("Connected to %s@%s:%s/%s", s.pg_user, s.pg_host, s.pg_port, s.pg_db)
        return cls(conn, VectorSearch.from_settings(s), s.embed_dimensions)

    def close(self):
        self.conn.close()

    def ping(self):
        self.conn.execute("SELECT 1")

    def ensure_schema(self):
        column = sql.Identifier(self.search_params.path)
        with self.conn.transaction():
            self.conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
            self.conn.execute(sql.SQL(
                """
                CREATE TABLE IF NOT EXISTS {table} (
                    id BIGSERIAL PRIMARY KEY,
                    year_film INTEGER NOT NULL,
                    year_ceremony INTEGER NOT NULL,
                    ceremony TEXT NOT NULL,
                    category TEXT NOT NULL,
                    name TEXT NOT NULL,
                    film TEXT NOT NULL,
                    winner BOOLEAN NOT NULL,
                    description TEXT NOT NULL,
                    {column} vector({dim}) NOT NULL
                )
                """
            ).format(table=sql.Identifier(TABLE), column=column, dim=sql.Literal(self.dimensions)))
            self.conn.execute(sql.SQL(
                "CREATE INDEX IF NOT EXISTS {index} ON {table} USING hnsw ({column} vector_cosine_ops)"
            ).format(index=sql.Identifier(self.search_params.index), table=sql.Identifier(TABLE), column=column))
        logger.info("Schema ready: table %s, index %s", TABLE, self.search_params.index)

    def insert_award(self, record: AwardRecord) -> int:
        # plain insert, no dedup: ingesting the same CSV twice stores every row twice
        if record.description is None or record.embedding is None:
            raise ValueError("record must carry a description and an embedding before it is stored")
        query = sql.SQL(
            """
            INSERT INTO {table} (year_film, year_ceremony, ceremony, category, name, film, winner,
                                 description, {column})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s::vector)
            RETURNING id
            """
        ).format(table=sql.Identifier(TABLE), column=sql.Identifier(self.search_params.path))
        with self.conn.transaction():
            row = self.conn.execute(query, (
                record.year_film,
                record.year_ceremony,
                record.ceremony,
                record.category,
                record.name,
                record.film,
                record.winner,
                record.description,
                vector_literal(record.embedding),
            )).fetchone()
        return row[0]

    def vector_search(self, q_vec: Sequence[float]) -> List[SearchHit]:
        # Cosine distance operator `<=>`; ef_search widens the HNSW candidate list
        params = self.search_params
        column = sql.Identifier(params.path)
        query = sql.SQL(
            """
            SELECT id, description, 1.0 - ({column} <=> %(vec)s::vector) AS score
            FROM {table}
            ORDER BY {column} <=> %(vec)s::vector
            LIMIT %(limit)s
            """
        ).format(table=sql.Identifier(TABLE), column=column)
        with self.conn.transaction():
            self.conn.execute("SELECT set_config('hnsw.ef_search', %s, true)", (str(params.num_candidates),))
            rows = self.conn.execute(query, {"vec": vector_literal(q_vec), "limit": params.limit}).fetchall()
        return [SearchHit(id=r[0], description=r[1], score=float(r[2])) for r in rows]
