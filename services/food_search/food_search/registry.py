"""
Process-wide cache of embedding providers, keyed by model id.

The first resolve() of a model builds its provider and probes the vector
width; concurrent callers for the same model share that single in-flight
load. Different models load independently.
"""
import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from food_search.columns import embedding_column_name
from food_search.config import MODEL_LOAD_RETRY_AFTER
from food_search.embedding.base import EmbeddingProvider, require_texts
from food_search.embedding.provider import backend_for, make_provider
from food_search.errors import DimensionProbeError, EmbeddingError
from food_search.logging_config import get_logger

logger = get_logger("food_search.registry")

PROBE_SENTINEL = "dimension probe"

ProviderFactory = Callable[[str], EmbeddingProvider]


@dataclass
class ProviderHandle:
    model_id: str
    backend: str
    dimensionality: int
    column_name: str
    provider: EmbeddingProvider = field(repr=False)

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Embed a batch off the event loop. The result always has one vector
        per input; individual vector widths are checked by the caller.
        """
        items = require_texts(texts)
        vectors = await asyncio.to_thread(self.provider.embed, items)
        if vectors is None or len(vectors) != len(items):
            got = 0 if vectors is None else len(vectors)
            raise EmbeddingError(
                f"Model {self.model_id} returned {got} vectors for {len(items)} inputs"
            )
        return vectors


class ProviderRegistry:
    def __init__(
        self,
        provider_factory: ProviderFactory = make_provider,
        retry_after: float = MODEL_LOAD_RETRY_AFTER,
    ):
        self._factory = provider_factory
        self._retry_after = retry_after
        self._handles: Dict[str, ProviderHandle] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        # model id -> (monotonic time of failure, exception)
        self._failures: Dict[str, Tuple[float, BaseException]] = {}

    def is_ready(self, model_id: str) -> bool:
        return model_id in self._handles

    def is_loading(self, model_id: str) -> bool:
        return model_id in self._inflight

    def ready_models(self) -> List[str]:
        return sorted(self._handles)

    def get(self, model_id: str) -> Optional[ProviderHandle]:
        return self._handles.get(model_id)

    def load_error(self, model_id: str) -> Optional[BaseException]:
        """
        The exception of the last failed load of model_id, if it failed less
        than retry_after seconds ago and no new attempt has started since.
        """
        failure = self._failures.get(model_id)
        if failure is None:
            return None
        failed_at, exc = failure
        if time.monotonic() - failed_at >= self._retry_after:
            return None
        return exc

    def evict(self, model_id: str) -> bool:
        return self._handles.pop(model_id, None) is not None

    async def resolve(self, model_id: str, probe_text: Optional[str] = None) -> ProviderHandle:
        """
        Return the cached handle for model_id, loading it on first use.

        probe_text is only used when this call starts the load; the batch job
        passes a real record so the probe sees production-like text.
        """
        handle = self._handles.get(model_id)
        if handle is not None:
            return handle
        task = self._start(model_id, probe_text)
        # shield: a cancelled waiter must not cancel the load other callers share
        return await asyncio.shield(task)

    def warm(self, model_id: str) -> "asyncio.Task[ProviderHandle]":
        """Start loading model_id in the background without waiting for it."""
        return self._start(model_id, None)

    def _start(self, model_id: str, probe_text: Optional[str]) -> "asyncio.Task[ProviderHandle]":
        task = self._inflight.get(model_id)
        if task is None:
            # building a provider is cheap; a missing credential surfaces here, before any load
            provider = self._factory(model_id)
            provider.ensure_configured()
            self._failures.pop(model_id, None)
            task = asyncio.ensure_future(self._load(model_id, provider, probe_text or PROBE_SENTINEL))
            self._inflight[model_id] = task
            task.add_done_callback(lambda t: self._finish(model_id, t))
        return task

    def _finish(self, model_id: str, task: asyncio.Task) -> None:
        if self._inflight.get(model_id) is task:
            del self._inflight[model_id]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            # the handle is not cached: the next resolve() starts a fresh attempt
            self._failures[model_id] = (time.monotonic(), exc)
            logger.error("Loading embedding model %s failed: %s", model_id, exc)

    async def _load(self, model_id: str, provider: EmbeddingProvider, probe_text: str) -> ProviderHandle:
        backend = provider.backend or backend_for(model_id)
        logger.info("Initializing %s embedding backend for %s", backend, model_id)

        probe = await asyncio.to_thread(provider.embed, [probe_text])
        dim = len(probe[0]) if probe and probe[0] is not None else 0
        if dim < 1:
            raise DimensionProbeError(model_id, dim)

        handle = ProviderHandle(
            model_id=model_id,
            backend=backend,
            dimensionality=dim,
            column_name=embedding_column_name(model_id),
            provider=provider,
        )
        self._handles[model_id] = handle
        logger.info("Embedding model %s ready (dimension %d)", model_id, dim)
        return handle
