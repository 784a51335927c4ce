import threading
from typing import List, Optional, Sequence

from food_search.config import TRANSFORMERS_CACHE
from food_search.embedding.base import EmbeddingProvider, require_texts
from food_search.errors import EmbeddingError
from food_search.logging_config import get_logger
from food_search.pooling import mean_pool

logger = get_logger("food_search.embedding.local")


class LocalTransformerEmbeddingProvider(EmbeddingProvider):
    """
    Runs a Hugging Face feature-extraction pipeline in-process.

    The pipeline yields one vector per token; they are mean-pooled into a
    single vector per input. The model is loaded on first use and inference
    is serialized, one call at a time per provider.
    """

    backend = "local"

    def __init__(self, model_name: str, cache_dir: Optional[str] = TRANSFORMERS_CACHE):
        self._model = model_name
        self._cache_dir = cache_dir
        self._extractor = None
        self._lock = threading.Lock()

    @property
    def model_name(self) -> str:
        return self._model

    def _load(self):
        if self._extractor is None:
            from transformers import pipeline

            logger.info("Loading feature-extraction model %s (cache %s)", self._model, self._cache_dir)
            model_kwargs = {"cache_dir": self._cache_dir} if self._cache_dir else {}
            self._extractor = pipeline(
                "feature-extraction",
                model=self._model,
                model_kwargs=model_kwargs,
            )
        return self._extractor

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        items = require_texts(texts)
        with self._lock:
            extractor = self._load()
            try:
                outputs = extractor(items)
            except Exception as e:
                raise EmbeddingError(f"Local inference failed for {self._model}: {e}") from e

        return [mean_pool(tokens) for tokens in outputs]
