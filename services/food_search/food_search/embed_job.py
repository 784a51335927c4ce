"""Command-line entry point for the batch embedding job."""

import asyncio
from typing import Annotated

import typer
from sqlalchemy.exc import SQLAlchemyError

from food_search.config import EMBEDDING_BATCH_SIZE, EMBEDDING_MODEL, FOOD_TABLE, LOG_LEVEL
from food_search.db import dispose_engine, get_engine
from food_search.errors import FoodSearchError
from food_search.logging_config import get_logger, setup_logging
from food_search.pipeline import run_batch_embedding
from food_search.registry import ProviderRegistry

logger = get_logger("food_search.embed_job")

app = typer.Typer(help="Embed food names that have no vector for the chosen model yet.")


async def _run(model: str, table: str, batch_size: int) -> int:
    try:
        return await run_batch_embedding(
            get_engine(),
            ProviderRegistry(),
            table=table,
            model_id=model,
            batch_size=batch_size,
        )
    finally:
        await dispose_engine()


@app.command()
def embed(
    model: Annotated[
        str,
        typer.Option("--model", "-m", help="Embedding model identifier"),
    ] = EMBEDDING_MODEL,
    table: Annotated[
        str,
        typer.Option("--table", "-t", help="Table holding the food records"),
    ] = FOOD_TABLE,
    batch_size: Annotated[
        int,
        typer.Option("--batch-size", "-b", min=1, help="Records per embedding call"),
    ] = EMBEDDING_BATCH_SIZE,
) -> None:
    setup_logging(LOG_LEVEL)
    logger.info("Using model: %s", model)
    try:
        count = asyncio.run(_run(model, table, batch_size))
    except (FoodSearchError, SQLAlchemyError) as e:
        logger.error("Embedding run failed | model=%s table=%s: %s", model, table, e)
        raise typer.Exit(code=1)
    logger.info("Done: %d embeddings stored.", count)


if __name__ == "__main__":
    app()
