import re
from typing import Optional

from food_search.embedding.base import EmbeddingProvider
from food_search.embedding.gemini_provider import GeminiEmbeddingProvider
from food_search.embedding.local_provider import LocalTransformerEmbeddingProvider
from food_search.embedding.openai_provider import OpenAIEmbeddingProvider
from food_search.embedding.stub_provider import StubEmbeddingProvider

BACKEND_LOCAL = "local"
BACKEND_OPENAI = "openai"
BACKEND_GEMINI = "gemini"
BACKEND_STUB = "stub"

_STUB_DIMS_RE = re.compile(r"(\d+)$")


def backend_for(model_id: str) -> str:
    """Pick the backend kind from the model identifier alone."""
    m = model_id.strip().lower()
    if m.startswith("stub"):
        return BACKEND_STUB
    if m.startswith("gemini") or m.startswith("models/"):
        return BACKEND_GEMINI
    if m.startswith("text-embedding-3") or m.startswith("text-embedding-ada"):
        return BACKEND_OPENAI
    return BACKEND_LOCAL


def make_provider(
    model_id: str,
    *,
    openai_api_key: Optional[str] = None,
    gemini_api_key: Optional[str] = None,
    cache_dir: Optional[str] = None,
) -> EmbeddingProvider:
    """
    Build an (unloaded) provider for model_id. Nothing here touches the
    network or the model weights; that happens on the first embed().
    """
    backend = backend_for(model_id)

    if backend == BACKEND_STUB:
        m = _STUB_DIMS_RE.search(model_id)
        dims = int(m.group(1)) if m else 384
        return StubEmbeddingProvider(dims=dims, model_name=model_id)

    if backend == BACKEND_GEMINI:
        return GeminiEmbeddingProvider(model_id, api_key=gemini_api_key)

    if backend == BACKEND_OPENAI:
        return OpenAIEmbeddingProvider(model_id, api_key=openai_api_key)

    if cache_dir is None:
        return LocalTransformerEmbeddingProvider(model_id)
    return LocalTransformerEmbeddingProvider(model_id, cache_dir=cache_dir)
