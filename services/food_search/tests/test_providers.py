import pytest

from food_search.embedding.gemini_provider import GeminiEmbeddingProvider
from food_search.embedding.local_provider import LocalTransformerEmbeddingProvider
from food_search.embedding.openai_provider import OpenAIEmbeddingProvider
from food_search.embedding.provider import backend_for, make_provider
from food_search.embedding.stub_provider import StubEmbeddingProvider
from food_search.errors import MissingCredentialError
from food_search.pooling import cosine_distance


def test_stub_one_vector_per_input(embedder):
    texts = ["apple pie", "banana bread", "steel beam"]
    vectors = embedder.embed(texts)
    assert len(vectors) == len(texts)
    assert all(len(v) == 64 for v in vectors)


def test_stub_deterministic(embedder):
    assert embedder.embed(["Apple cake"]) == embedder.embed(["Apple cake"])


def test_stub_shared_words_are_close(embedder):
    apple, pie, beam = embedder.embed(["apple", "apple pie", "steel beam"])
    assert cosine_distance(apple, pie) < cosine_distance(apple, beam)


def test_empty_batch_rejected(embedder):
    with pytest.raises(ValueError):
        embedder.embed([])


def test_bare_string_rejected(embedder):
    with pytest.raises(TypeError):
        embedder.embed("apple")


def test_backend_discriminator():
    assert backend_for("stub-4") == "stub"
    assert backend_for("gemini-embedding-001") == "gemini"
    assert backend_for("models/text-embedding-004") == "gemini"
    assert backend_for("text-embedding-3-small") == "openai"
    assert backend_for("Xenova/all-MiniLM-L6-v2") == "local"
    assert backend_for("sentence-transformers/all-MiniLM-L6-v2") == "local"


def test_make_provider_stub_width_from_id():
    p = make_provider("stub-12")
    assert isinstance(p, StubEmbeddingProvider)
    assert len(p.embed(["x"])[0]) == 12
    assert len(make_provider("stub").embed(["x"])[0]) == 384


def test_make_provider_does_not_load_local_model():
    p = make_provider("Xenova/all-MiniLM-L6-v2", cache_dir="/tmp/models")
    assert isinstance(p, LocalTransformerEmbeddingProvider)
    assert p._extractor is None


def test_openai_missing_key_raised_on_first_use():
    p = OpenAIEmbeddingProvider("text-embedding-3-small", api_key="")
    with pytest.raises(MissingCredentialError) as exc:
        p.embed(["apple"])
    assert exc.value.credential == "OPENAI_API_KEY"
    assert "OPENAI_API_KEY" in str(exc.value)


def test_gemini_missing_key_raised_on_first_use():
    # constructing is fine; only using it fails
    p = GeminiEmbeddingProvider("gemini-embedding-001", api_key="")
    with pytest.raises(MissingCredentialError) as exc:
        p.ensure_configured()
    assert exc.value.credential == "GEMINI_API_KEY"


def test_local_provider_mean_pools_tokens():
    p = LocalTransformerEmbeddingProvider("some/model", cache_dir=None)

    def fake_extractor(texts):
        # (1, tokens, features) per input, like the feature-extraction pipeline
        return [[[[1.0, 2.0], [3.0, 4.0]]] for _ in texts]

    p._extractor = fake_extractor
    assert p.embed(["a", "b"]) == [[2.0, 3.0], [2.0, 3.0]]
