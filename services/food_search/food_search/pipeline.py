"""
Batch embedding of food names into the model's vector column.

Only rows whose column is still NULL are picked up, so re-running the job
continues where the previous run stopped and is a no-op once done.
"""
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from food_search.columns import embedding_column_name
from food_search.config import EMBEDDING_BATCH_SIZE, EMBEDDING_MODEL, FOOD_TABLE
from food_search.db import check_identifier, fetch_food_names, store_embedding
from food_search.errors import BatchEmbeddingError
from food_search.logging_config import get_logger
from food_search.registry import ProviderRegistry
from food_search.schema import describe_column, ensure_column

logger = get_logger("food_search.pipeline")


async def run_batch_embedding(
    engine: AsyncEngine,
    registry: ProviderRegistry,
    *,
    table: str = FOOD_TABLE,
    model_id: str = EMBEDDING_MODEL,
    batch_size: int = EMBEDDING_BATCH_SIZE,
) -> int:
    """
    Embed every unembedded record of table with model_id.

    Returns how many records were stored. Vectors of the wrong width and
    per-record write errors are skipped; a failed provider call aborts the
    run with BatchEmbeddingError (rows stored before it are kept).
    """
    check_identifier(table)
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    column = embedding_column_name(model_id)
    logger.info("Embedding %s.%s with model %s", table, column, model_id)

    async with engine.connect() as conn:
        exists = await describe_column(conn, table, column) is not None
        foods = await fetch_food_names(conn, table, column if exists else None)

    total = len(foods)
    if total == 0:
        logger.info("No foods found without %s embeddings.", column)
        return 0

    # probe with real text, not a synthetic sentinel
    handle = await registry.resolve(model_id, probe_text=foods[0].clean)
    logger.info("Detected embedding dimension: %d", handle.dimensionality)
    await ensure_column(engine, table, handle.column_name, handle.dimensionality)

    counter = 0
    for batch_index, start in enumerate(range(0, total, batch_size)):
        batch = foods[start:start + batch_size]
        try:
            vectors = await handle.embed([food.clean for food in batch])
        except Exception as e:
            logger.error(
                "Embedding batch %d failed | model=%s table=%s stored=%d",
                batch_index, model_id, table, counter,
            )
            raise BatchEmbeddingError(batch_index, counter, total, e) from e

        for food, vec in zip(batch, vectors):
            if not vec or len(vec) != handle.dimensionality:
                logger.warning(
                    "Skipping %r: got %d values, expected %d",
                    food.key, len(vec or []), handle.dimensionality,
                )
                continue
            try:
                async with engine.begin() as conn:
                    updated = await store_embedding(conn, table, handle.column_name, food.key, vec)
            except SQLAlchemyError as e:
                logger.warning("Storing embedding for %r failed (batch %d): %s", food.key, batch_index, e)
                continue
            if updated < 1:
                logger.warning("No row matched %r; embedding not stored", food.key)
                continue
            counter += 1

        logger.info("Processed %d / %d embeddings...", counter, total)

    logger.info("%d embeddings inserted into %s.%s", counter, table, handle.column_name)
    return counter
