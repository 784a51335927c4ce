import asyncio
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from food_search.config import (
    EMBEDDING_MODEL,
    FOOD_TABLE,
    SEARCH_MAX_TOP_K,
    SEARCH_READY_TIMEOUT,
    SEARCH_TOP_K,
)
from food_search.db import FoodMatch, check_identifier, nearest_foods
from food_search.errors import (
    EmbeddingError,
    InvalidQueryError,
    ModelLoadError,
    ProviderNotReadyError,
)
from food_search.registry import ProviderHandle, ProviderRegistry


class SearchService:
    """
    Nearest-neighbour lookup of food names for a free-text query.

    A model that has not finished loading is never substituted by another
    one: the request either waits up to ready_timeout seconds or fails with
    ProviderNotReadyError so the caller can retry.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        registry: ProviderRegistry,
        *,
        table: str = FOOD_TABLE,
        default_model: str = EMBEDDING_MODEL,
        top_k: int = SEARCH_TOP_K,
        max_top_k: int = SEARCH_MAX_TOP_K,
        ready_timeout: float = SEARCH_READY_TIMEOUT,
    ):
        self.engine = engine
        self.registry = registry
        self.table = check_identifier(table)
        self.default_model = default_model
        self.max_top_k = max_top_k
        self.top_k = min(top_k, max_top_k)
        self.ready_timeout = ready_timeout

    def resolve_model(self, model_id: Optional[str]) -> str:
        return (model_id or "").strip() or self.default_model

    async def _ready_handle(self, model_id: str) -> ProviderHandle:
        handle = self.registry.get(model_id)
        if handle is not None:
            return handle

        # a recent failed load is reported as is; 503 only means "still loading"
        failed = self.registry.load_error(model_id)
        if failed is not None:
            raise ModelLoadError(model_id, failed) from failed

        task = self.registry.warm(model_id)
        if self.ready_timeout <= 0:
            raise ProviderNotReadyError(model_id)
        try:
            return await asyncio.wait_for(asyncio.shield(task), self.ready_timeout)
        except asyncio.TimeoutError:
            raise ProviderNotReadyError(model_id) from None

    async def search(
        self,
        query: Optional[str],
        model_id: Optional[str] = None,
        locale: Optional[str] = None,
        top_k: Optional[int] = None,
    ) -> List[FoodMatch]:
        if query is None or not query.strip():
            raise InvalidQueryError("query must not be empty")

        k = self.top_k if top_k is None else max(1, min(int(top_k), self.max_top_k))
        handle = await self._ready_handle(self.resolve_model(model_id))

        vectors = await handle.embed([query.strip()])
        vec = vectors[0]
        if not vec or len(vec) != handle.dimensionality:
            raise EmbeddingError(
                f"Model {handle.model_id} returned a {len(vec or [])}-dim query vector, "
                f"expected {handle.dimensionality}"
            )

        async with self.engine.connect() as conn:
            return await nearest_foods(
                conn,
                self.table,
                handle.column_name,
                vec,
                k,
                locale=(locale or "").strip() or None,
            )
