from typing import List, Optional, Sequence

from google import genai

from food_search.config import GEMINI_API_KEY
from food_search.embedding.base import EmbeddingProvider, require_texts
from food_search.errors import EmbeddingError, MissingCredentialError


class GeminiEmbeddingProvider(EmbeddingProvider):
    """
    Google Gemini embeddings. The batch endpoint accepts a list of strings and
    returns one already-pooled vector per string.
    """

    backend = "gemini"

    def __init__(self, model_name: str, api_key: Optional[str] = None):
        self._model = model_name
        self._api_key = GEMINI_API_KEY if api_key is None else api_key
        self._client: Optional[genai.Client] = None

    @property
    def model_name(self) -> str:
        return self._model

    def ensure_configured(self) -> None:
        self._get_client()

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self._api_key:
                raise MissingCredentialError("GEMINI_API_KEY", "Gemini")
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        items = require_texts(texts)
        client = self._get_client()
        try:
            resp = client.models.embed_content(model=self._model, contents=items)
        except Exception as e:
            raise EmbeddingError(f"Gemini embedding failed: {e}") from e

        return [list(e.values or []) for e in (resp.embeddings or [])]
