"""
Embedder Base - Pluggable text → vector providers

WHAT: Abstract embedder contract, config, cosine helper and exact-text cache
WHERE: mnemos/embedders/base.py - embedding layer
WHO: EntityExtractor (entity vectors) and KnowledgeGraph (query vectors)
TIME: Hashing backend <1ms per text; model backends dominate pipeline latency

Any deterministic producer of fixed-dimension vectors satisfies the contract:
identical text must map to identical vectors so that a node whose embedding
equals the query embedding scores a cosine similarity of 1.0.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np


class MissingDependencyError(RuntimeError):
    """Raised when an embedding backend's packages are unavailable in the environment."""


@dataclass(slots=True)
class EmbeddingConfig:
    """Backend selection and shape for the embedding provider."""

    backend: str = "hashing"  # hashing | sentence-transformers
    model_name: Optional[str] = None
    dim: int = 384
    device: str = "cpu"
    batch_size: int = 32
    cache: bool = True

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "EmbeddingConfig":
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            backend=env.get("MNEMOS_EMBEDDER", defaults.backend),
            model_name=env.get("MNEMOS_EMBEDDER_MODEL") or defaults.model_name,
            dim=int(env.get("MNEMOS_EMBEDDING_DIM", defaults.dim)),
            device=env.get("MNEMOS_EMBEDDER_DEVICE", defaults.device),
            cache=env.get("MNEMOS_EMBEDDER_CACHE", "1") not in {"0", "false", "False"},
        )


def cosine_similarity(vec1: Optional[Sequence[float]], vec2: Optional[Sequence[float]]) -> float:
    """Compute cosine similarity between two vectors (0.0 for empty or zero vectors)."""
    if vec1 is None or vec2 is None or len(vec1) == 0 or len(vec2) == 0:
        return 0.0
    v1 = np.asarray(vec1, dtype=np.float64)
    v2 = np.asarray(vec2, dtype=np.float64)
    if v1.shape != v2.shape:
        return 0.0
    norm = np.linalg.norm(v1) * np.linalg.norm(v2)
    if norm <= 0:
        return 0.0
    return float(np.dot(v1, v2) / norm)


class EmbedderBase(ABC):
    """Text → fixed-dimension vector provider."""

    @property
    @abstractmethod
    def dim(self) -> int:
        """Dimension of every produced vector."""

    @abstractmethod
    def embed_documents(self, texts: Sequence[str], batch_size: Optional[int] = None) -> np.ndarray:
        """Return a ``(len(texts), dim)`` array of embeddings."""

    async def embed(self, text: str) -> List[float]:
        """Embed a single text. Override for providers doing network I/O."""
        return self.embed_documents([text], batch_size=1)[0].tolist()


class CachingEmbedder(EmbedderBase):
    """Wraps another embedder and memoises vectors by exact text."""

    def __init__(self, inner: EmbedderBase, max_entries: int = 10_000) -> None:
        self._inner = inner
        self._max_entries = max_entries
        self._cache: Dict[str, List[float]] = {}
        self.hits = 0
        self.misses = 0

    @property
    def inner(self) -> EmbedderBase:
        return self._inner

    @property
    def dim(self) -> int:
        return self._inner.dim

    def __len__(self) -> int:
        return len(self._cache)

    def embed_documents(self, texts: Sequence[str], batch_size: Optional[int] = None) -> np.ndarray:
        if not texts:
            return np.zeros((0, self.dim), dtype=np.float32)
        found = {t: self._cache[t] for t in texts if t in self._cache}
        missing = [t for t in dict.fromkeys(texts) if t not in found]
        if missing:
            vectors = self._inner.embed_documents(missing, batch_size=batch_size)
            for text, vec in zip(missing, vectors):
                found[text] = vec.tolist()
                self._remember(text, found[text])
        self.hits += len(texts) - len(missing)
        self.misses += len(missing)
        return np.asarray([found[t] for t in texts], dtype=np.float32)

    async def embed(self, text: str) -> List[float]:
        cached = self._cache.get(text)
        if cached is not None:
            self.hits += 1
            return list(cached)
        self.misses += 1
        vector = await self._inner.embed(text)
        self._remember(text, list(vector))
        return list(vector)

    def clear(self) -> None:
        self._cache.clear()

    def _remember(self, text: str, vector: List[float]) -> None:
        if len(self._cache) >= self._max_entries:
            # dicts keep insertion order: evict the oldest entry
            self._cache.pop(next(iter(self._cache)))
        self._cache[text] = vector


__all__ = [
    "CachingEmbedder",
    "EmbedderBase",
    "EmbeddingConfig",
    "MissingDependencyError",
    "cosine_similarity",
]
