import asyncio
import sys
import threading
import types

import numpy as np
import pytest

from mnemos.embedders import (
    CachingEmbedder,
    EmbeddingConfig,
    HashingEmbedder,
    MissingDependencyError,
    SentenceTransformerEmbedder,
    cosine_similarity,
    create_embedder,
    tokenize_identifiers,
)


def test_tokenize_identifiers_splits_camel_and_snake_case():
    assert tokenize_identifiers("getUserName") == ["get", "user", "name"]
    assert tokenize_identifiers("load_all_rows") == ["load", "all", "rows"]
    assert tokenize_identifiers("HTTPServer") == ["http", "server"]


def test_hashing_embedder_is_deterministic_and_normalised():
    embedder = HashingEmbedder(dim=64)
    first = embedder.embed_documents(["parseConfig"])
    second = embedder.embed_documents(["parseConfig"])
    assert first.shape == (1, 64)
    assert np.allclose(first, second)
    assert np.linalg.norm(first[0]) == pytest.approx(1.0, rel=1e-5)


def test_hashing_embedder_empty_text_is_zero_vector():
    vec = HashingEmbedder(dim=32).embed_documents([""])[0]
    assert not vec.any()


def test_related_identifiers_score_higher_than_unrelated():
    embedder = HashingEmbedder()
    a, b, c = embedder.embed_documents(["getUserProfile", "get_user_profile", "renderChart"])
    assert cosine_similarity(a, b) > cosine_similarity(a, c)


def test_cosine_similarity_edge_cases():
    assert cosine_similarity([], [1.0]) == 0.0
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0]) == 0.0
    assert cosine_similarity([1.0, 2.0], [2.0, 4.0]) == pytest.approx(1.0)


def test_caching_embedder_reuses_vectors():
    cache = CachingEmbedder(HashingEmbedder(dim=16))
    first = asyncio.run(cache.embed("token"))
    second = asyncio.run(cache.embed("token"))
    assert first == second
    assert cache.hits == 1 and cache.misses == 1
    batch = cache.embed_documents(["token", "other"])
    assert batch.shape == (2, 16)
    assert len(cache) == 2


def test_caching_embedder_evicts_oldest_entry():
    cache = CachingEmbedder(HashingEmbedder(dim=16), max_entries=2)
    for text in ("a", "b", "c"):
        asyncio.run(cache.embed(text))
    assert len(cache) == 2


def test_create_embedder_defaults_to_cached_hashing():
    embedder = create_embedder()
    assert isinstance(embedder, CachingEmbedder)
    assert isinstance(embedder.inner, HashingEmbedder)
    assert embedder.dim == 384


def test_create_embedder_rejects_unknown_backend():
    with pytest.raises(ValueError):
        create_embedder(EmbeddingConfig(backend="word2vec"))


def test_sentence_transformer_reports_missing_dependency(monkeypatch):
    monkeypatch.setitem(sys.modules, "sentence_transformers", None)
    embedder = create_embedder(EmbeddingConfig(backend="sentence-transformers", cache=False))
    assert isinstance(embedder, SentenceTransformerEmbedder)
    assert not SentenceTransformerEmbedder.dependencies_available()
    with pytest.raises(MissingDependencyError):
        embedder.embed_documents(["hello"])


class FakeSentenceTransformer:
    def __init__(self, model_name, device="cpu"):
        self.model_name = model_name
        self.encode_threads = []

    def get_sentence_embedding_dimension(self):
        return 4

    def encode(self, texts, **kwargs):
        self.encode_threads.append(threading.get_ident())
        return np.ones((len(texts), 4), dtype=np.float32) / 2.0


def test_sentence_transformer_embed_runs_off_the_event_loop(monkeypatch):
    module = types.ModuleType("sentence_transformers")
    module.SentenceTransformer = FakeSentenceTransformer
    monkeypatch.setitem(sys.modules, "sentence_transformers", module)

    embedder = SentenceTransformerEmbedder(EmbeddingConfig(backend="sentence-transformers"))
    assert embedder.dim == 4

    async def scenario():
        return await embedder.embed("parseConfig"), threading.get_ident()

    vector, loop_thread = asyncio.run(scenario())
    assert vector == pytest.approx([0.5, 0.5, 0.5, 0.5])
    assert embedder._model.encode_threads
    assert loop_thread not in embedder._model.encode_threads


def test_sentence_transformer_without_dimension_raises(monkeypatch):
    class NoDimension(FakeSentenceTransformer):
        def get_sentence_embedding_dimension(self):
            return None

    module = types.ModuleType("sentence_transformers")
    module.SentenceTransformer = NoDimension
    monkeypatch.setitem(sys.modules, "sentence_transformers", module)

    with pytest.raises(RuntimeError):
        SentenceTransformerEmbedder().dim
