from typing import List, Optional, Sequence

from openai import OpenAI

from food_search.config import OPENAI_API_KEY, REMOTE_TIMEOUT
from food_search.embedding.base import EmbeddingProvider, require_texts
from food_search.errors import EmbeddingError, MissingCredentialError


class OpenAIEmbeddingProvider(EmbeddingProvider):
    backend = "openai"

    def __init__(self, model_name: str, api_key: Optional[str] = None, timeout: float = REMOTE_TIMEOUT):
        self._model = model_name
        self._api_key = OPENAI_API_KEY if api_key is None else api_key
        self._timeout = timeout
        self._client: Optional[OpenAI] = None

    @property
    def model_name(self) -> str:
        return self._model

    def ensure_configured(self) -> None:
        self._get_client()

    def _get_client(self) -> OpenAI:
        # the key is checked on first use so other backends keep working without it
        if self._client is None:
            if not self._api_key:
                raise MissingCredentialError("OPENAI_API_KEY", "OpenAI")
            self._client = OpenAI(api_key=self._api_key, timeout=self._timeout)
        return self._client

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        items = require_texts(texts)
        client = self._get_client()
        try:
            resp = client.embeddings.create(model=self._model, input=items)
        except Exception as e:
            raise EmbeddingError(f"OpenAI embedding failed: {e}") from e

        data = sorted(resp.data, key=lambda d: d.index)
        return [list(d.embedding) for d in data]
