"""
Embedding providers for the knowledge graph.

``create_embedder`` resolves an ``EmbeddingConfig`` to a concrete backend and,
unless disabled, wraps it in an exact-text cache.
"""

from __future__ import annotations

from typing import Optional

from .base import (  # noqa: F401
    CachingEmbedder,
    EmbedderBase,
    EmbeddingConfig,
    MissingDependencyError,
    cosine_similarity,
)
from .hashing import HashingEmbedder, tokenize_identifiers  # noqa: F401
from .sentence_transformer import SentenceTransformerEmbedder  # noqa: F401


def create_embedder(config: Optional[EmbeddingConfig] = None) -> EmbedderBase:
    """Build the embedder described by ``config`` (hashing backend by default)."""

    cfg = config or EmbeddingConfig()
    backend = cfg.backend.lower()
    embedder: EmbedderBase
    if backend == "hashing":
        embedder = HashingEmbedder(dim=cfg.dim)
    elif backend in {"sentence-transformers", "sentence_transformers", "st"}:
        embedder = SentenceTransformerEmbedder(cfg)
    else:
        raise ValueError(f"Unsupported embedding backend: {cfg.backend}")
    return CachingEmbedder(embedder) if cfg.cache else embedder


__all__ = [
    "CachingEmbedder",
    "EmbedderBase",
    "EmbeddingConfig",
    "HashingEmbedder",
    "MissingDependencyError",
    "SentenceTransformerEmbedder",
    "cosine_similarity",
    "create_embedder",
    "tokenize_identifiers",
]
