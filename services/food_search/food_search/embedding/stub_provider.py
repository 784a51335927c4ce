import hashlib
import random
from typing import List, Sequence

from food_search.embedding.base import EmbeddingProvider, require_texts
from food_search.pooling import mean_pool


class StubEmbeddingProvider(EmbeddingProvider):
    """
    Deterministic pseudo-embedding for tests/dev.

    Every lowercased word gets a fixed pseudo-random token vector seeded from
    its hash; token vectors are mean-pooled like the local backend does, so
    texts sharing words land close to each other.
    """

    backend = "stub"

    def __init__(self, dims: int = 384, model_name: str = "stub-384"):
        self._dims = dims
        self._model = model_name

    @property
    def model_name(self) -> str:
        return self._model

    def _token_vector(self, token: str) -> List[float]:
        h = hashlib.sha256(token.encode("utf-8")).digest()
        seed = int.from_bytes(h[:8], "big", signed=False)
        rng = random.Random(seed)
        return [rng.uniform(-1.0, 1.0) for _ in range(self._dims)]

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        out = []
        for text in require_texts(texts):
            tokens = text.lower().split() or [""]
            out.append(mean_pool([self._token_vector(t) for t in tokens]))
        return out
