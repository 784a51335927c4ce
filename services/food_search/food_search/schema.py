"""
Provisioning of per-model vector columns.

A model's column is added on first use with the probed width. An existing
column with another type or width is a configuration error; it is never
altered here because dropping it loses every stored vector.
"""
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from food_search.columns import parse_vector_width, vector_type
from food_search.db import check_identifier, is_sqlite
from food_search.errors import SchemaMismatchError
from food_search.logging_config import get_logger

logger = get_logger("food_search.schema")


async def describe_column(conn: AsyncConnection, table: str, column: str) -> Optional[str]:
    """Declared type of table.column, or None when the column does not exist."""
    check_identifier(table)

    if is_sqlite(conn):
        schema, _, name = table.rpartition(".")
        pragma = f"PRAGMA {schema}.table_info({name})" if schema else f"PRAGMA table_info({name})"
        for row in (await conn.execute(text(pragma))).fetchall():
            # (cid, name, type, notnull, dflt_value, pk)
            if row[1] == column:
                return str(row[2])
        return None

    row = (
        await conn.execute(
            text(
                """
                SELECT format_type(a.atttypid, a.atttypmod) AS type
                FROM pg_attribute a
                WHERE a.attrelid = to_regclass(:table)
                  AND a.attname = :column
                  AND a.attnum > 0
                  AND NOT a.attisdropped
                """
            ),
            {"table": table, "column": column},
        )
    ).fetchone()
    return str(row[0]) if row else None


def _verify(table: str, column: str, dimensionality: int, declared: str) -> None:
    width = parse_vector_width(declared)
    if width is None:
        raise SchemaMismatchError(table, column, dimensionality, None, declared)
    if width != dimensionality:
        raise SchemaMismatchError(table, column, dimensionality, width, declared)


async def _describe(engine: AsyncEngine, table: str, column: str) -> Optional[str]:
    async with engine.connect() as conn:
        return await describe_column(conn, table, column)


async def ensure_column(engine: AsyncEngine, table: str, column: str, dimensionality: int) -> bool:
    """
    Make sure table.column is a vector(dimensionality) column.

    Returns True when the column was added by this call. Safe to run from
    concurrent jobs: losing the ALTER race to an identical column is success.
    """
    check_identifier(table)
    check_identifier(column, "column")
    if int(dimensionality) < 1:
        raise ValueError(f"dimensionality must be positive, got {dimensionality}")

    declared = await _describe(engine, table, column)
    if declared is None:
        try:
            async with engine.begin() as conn:
                await conn.execute(
                    text(f"ALTER TABLE {table} ADD COLUMN {column} {vector_type(dimensionality)}")
                )
        except DBAPIError:
            declared = await _describe(engine, table, column)
            if declared is None:
                raise
            logger.info("Column %s.%s was added concurrently; verifying it", table, column)
        else:
            logger.info("Added column %s %s on table %s", column, vector_type(dimensionality), table)
            return True

    _verify(table, column, dimensionality, declared)
    logger.info("Column %s already exists with %s", column, declared)
    return False
