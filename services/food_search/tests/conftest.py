import asyncio
import threading
import time

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from food_search.embedding.base import EmbeddingProvider
from food_search.embedding.stub_provider import StubEmbeddingProvider
from food_search.registry import ProviderRegistry


class CountingProvider(EmbeddingProvider):
    """Stub-backed provider that records every embed() call."""

    backend = "stub"

    def __init__(self, dims: int = 64, model_name: str = "stub-64", delay: float = 0.0):
        self._inner = StubEmbeddingProvider(dims=dims, model_name=model_name)
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    @property
    def model_name(self) -> str:
        return self._inner.model_name

    def embed(self, texts):
        with self._lock:
            self.calls.append(list(texts))
        if self.delay:
            time.sleep(self.delay)
        return self._inner.embed(texts)


@pytest.fixture()
def embedder():
    return StubEmbeddingProvider(dims=64, model_name="stub-64")


@pytest.fixture()
def counting_provider():
    return CountingProvider


@pytest.fixture()
def registry():
    return ProviderRegistry()


@pytest.fixture()
def engine(tmp_path):
    """
    File-backed SQLite through the async engine. SQLite has no pgvector, so
    vector columns keep their declared type name and store JSON text.
    NullPool: every asyncio.run() gets fresh connections.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'foods.db'}",
        poolclass=NullPool,
    )

    async def _create():
        async with engine.begin() as conn:
            await conn.execute(text("""
                CREATE TABLE foods (
                  code    TEXT,
                  name    TEXT NOT NULL UNIQUE,
                  locale  TEXT
                );
            """))

    asyncio.run(_create())
    try:
        yield engine
    finally:
        asyncio.run(engine.dispose())


@pytest.fixture()
def add_foods(engine):
    def _add(*rows):
        """rows: names, or (code, name, locale) tuples."""
        async def _insert():
            async with engine.begin() as conn:
                for i, row in enumerate(rows):
                    if isinstance(row, str):
                        row = (f"F{i:04d}", row, "UK_V2_2022")
                    await conn.execute(
                        text("INSERT INTO foods (code, name, locale) VALUES (:c, :n, :l)"),
                        {"c": row[0], "n": row[1], "l": row[2]},
                    )

        asyncio.run(_insert())

    return _add


@pytest.fixture()
def query(engine):
    def _query(sql, params=None):
        async def _run():
            async with engine.connect() as conn:
                return (await conn.execute(text(sql), params or {})).fetchall()

        return asyncio.run(_run())

    return _query
