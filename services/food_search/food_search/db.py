from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from food_search.columns import is_safe_identifier
from food_search.config import DATABASE_URL
from food_search.errors import ConfigurationError
from food_search.pooling import cosine_distance


# -------------------------------------------------------------------
# Lazy engine creation
# -------------------------------------------------------------------

_engine: Optional[AsyncEngine] = None


def async_url(url: str) -> str:
    """Point plain postgres URLs at the async psycopg (v3) driver."""
    for prefix in ("postgresql://", "postgres://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is not None:
        return _engine

    if not DATABASE_URL:
        raise ConfigurationError("DATABASE_URL is not set")

    _engine = create_async_engine(
        async_url(DATABASE_URL),
        pool_pre_ping=True,
    )
    return _engine


async def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

@dataclass(frozen=True)
class FoodMatch:
    code: Optional[str]
    name: str
    distance: float

    def as_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "name": self.name, "distance": self.distance}


@dataclass(frozen=True)
class FoodName:
    """A record to embed: the stored name (update key) and the trimmed text sent to the model."""

    key: str
    clean: str


def is_sqlite(conn: AsyncConnection) -> bool:
    return conn.dialect.name == "sqlite"


def check_identifier(name: str, kind: str = "table") -> str:
    if not is_safe_identifier(name):
        raise ConfigurationError(f"Invalid {kind} identifier: {name!r}")
    return name


def serialize_embedding(conn: AsyncConnection, embedding: Sequence[float]) -> str:
    """
    pgvector takes the "[0.1,0.2,...]" text form; SQLite (tests) stores JSON.
    """
    if is_sqlite(conn):
        return json.dumps([float(x) for x in embedding])
    return "[" + ",".join(repr(float(x)) for x in embedding) + "]"


def decode_embedding(value) -> Optional[List[float]]:
    """
    Normalize an embedding read back from storage into List[float].

    - SQLite (tests): JSON text
    - Postgres (pgvector): may come back as string "[0.1,0.2,...]"
    """
    if value is None:
        return None

    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")

    if isinstance(value, str):
        v = value.strip()
        if v.startswith("[") and v.endswith("]"):
            inner = v[1:-1].strip()
            if inner == "":
                return []
            return [float(x) for x in inner.split(",") if x.strip()]
        return None

    try:
        return [float(x) for x in value]
    except TypeError:
        return None


def _code(value) -> Optional[str]:
    return None if value is None else str(value)


# -------------------------------------------------------------------
# Food records
# -------------------------------------------------------------------

async def fetch_food_names(
    conn: AsyncConnection,
    table: str,
    missing_column: Optional[str] = None,
) -> List[FoodName]:
    """
    De-duplicated names in storage order. Blank names are dropped; the
    stored value is kept as the key so updates match the row exactly.

    With missing_column set, only rows where that column IS NULL are returned;
    pass None when the column does not exist yet (every row is unembedded).
    """
    check_identifier(table)
    sql = f"SELECT name FROM {table}"
    if missing_column:
        sql += f" WHERE {check_identifier(missing_column, 'column')} IS NULL"

    rows = (await conn.execute(text(sql))).fetchall()
    keys = dict.fromkeys(str(r[0]) for r in rows if r[0] is not None)
    return [FoodName(key, key.strip()) for key in keys if key.strip()]


async def store_embedding(
    conn: AsyncConnection,
    table: str,
    column: str,
    name: str,
    embedding: Sequence[float],
) -> int:
    """Overwrite one record's vector, keyed by name. Returns the row count."""
    check_identifier(table)
    check_identifier(column, "column")
    value = serialize_embedding(conn, embedding)
    target = ":vec" if is_sqlite(conn) else "CAST(:vec AS vector)"

    result = await conn.execute(
        text(f"UPDATE {table} SET {column} = {target} WHERE name = :name"),
        {"name": name, "vec": value},
    )
    return result.rowcount


async def nearest_foods(
    conn: AsyncConnection,
    table: str,
    column: str,
    embedding: Sequence[float],
    top_k: int,
    locale: Optional[str] = None,
) -> List[FoodMatch]:
    """
    top_k rows closest to embedding by cosine distance, ascending.
    Rows with a NULL vector are never returned. One query either way.
    """
    check_identifier(table)
    check_identifier(column, "column")
    if is_sqlite(conn):
        return await _python_topk(conn, table, column, embedding, top_k, locale)
    return await _pgvector_topk(conn, table, column, embedding, top_k, locale)


async def _pgvector_topk(conn, table, column, embedding, top_k, locale) -> List[FoodMatch]:
    where = f"{column} IS NOT NULL"
    params: Dict[str, Any] = {"vec": serialize_embedding(conn, embedding), "top_k": top_k}
    if locale:
        where += " AND locale = :locale"
        params["locale"] = locale

    rows = (
        await conn.execute(
            text(
                f"""
                SELECT code, name, ({column} <=> CAST(:vec AS vector)) AS distance
                FROM {table}
                WHERE {where}
                ORDER BY {column} <=> CAST(:vec AS vector)
                LIMIT :top_k
                """
            ),
            params,
        )
    ).fetchall()

    return [FoodMatch(_code(code), str(name), float(dist)) for code, name, dist in rows]


async def _python_topk(conn, table, column, embedding, top_k, locale) -> List[FoodMatch]:
    where = f"{column} IS NOT NULL"
    params: Dict[str, Any] = {}
    if locale:
        where += " AND locale = :locale"
        params["locale"] = locale

    rows = (
        await conn.execute(text(f"SELECT code, name, {column} FROM {table} WHERE {where}"), params)
    ).fetchall()

    scored: List[FoodMatch] = []
    for code, name, value in rows:
        vec = decode_embedding(value)
        if not vec or len(vec) != len(embedding):
            continue
        scored.append(FoodMatch(_code(code), str(name), cosine_distance(embedding, vec)))

    # sort is stable, so equal distances keep storage order
    scored.sort(key=lambda m: m.distance)
    return scored[:top_k]
