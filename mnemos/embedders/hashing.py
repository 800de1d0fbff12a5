"""
Hashing Embedder - Deterministic, dependency-light text vectors

Feature-hashes identifier sub-tokens and character trigrams into a fixed
number of buckets with ``blake2b`` (stable across processes, unlike
``hash()``), then L2-normalises. Identifiers that share most of their
sub-tokens (``getUser`` / ``get_users``) land close together, which is all
the extractor's ``similar_to`` detection and the clustering pass need.
"""

from __future__ import annotations

import hashlib
import re
from typing import Iterable, List, Optional, Sequence

import numpy as np

from .base import EmbedderBase

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_TOKEN = re.compile(r"[A-Za-z0-9]+")


def tokenize_identifiers(text: str) -> List[str]:
    """Split text into lowercase words, breaking camelCase and snake_case."""
    tokens: List[str] = []
    for word in _TOKEN.findall(text):
        tokens.extend(part.lower() for part in _CAMEL_BOUNDARY.split(word) if part)
    return tokens


def _trigrams(text: str) -> Iterable[str]:
    padded = f"  {text.lower()} "
    for i in range(len(padded) - 2):
        yield padded[i : i + 3]


class HashingEmbedder(EmbedderBase):
    """Signed feature hashing over sub-tokens (weight 1.0) and trigrams (weight 0.5)."""

    def __init__(self, dim: int = 384, token_weight: float = 1.0, trigram_weight: float = 0.5) -> None:
        if dim < 8:
            raise ValueError("dim must be >= 8")
        self._dim = dim
        self.token_weight = token_weight
        self.trigram_weight = trigram_weight

    @property
    def dim(self) -> int:
        return self._dim

    def _bucket(self, feature: str) -> tuple[int, float]:
        digest = hashlib.blake2b(feature.encode("utf-8"), digest_size=8).digest()
        value = int.from_bytes(digest, "little")
        sign = 1.0 if value & 1 else -1.0
        return (value >> 1) % self._dim, sign

    def _embed_one(self, text: str) -> np.ndarray:
        vec = np.zeros(self._dim, dtype=np.float32)
        if not text:
            return vec
        for token in tokenize_identifiers(text):
            idx, sign = self._bucket("t:" + token)
            vec[idx] += sign * self.token_weight
        for gram in _trigrams(text):
            idx, sign = self._bucket("g:" + gram)
            vec[idx] += sign * self.trigram_weight
        norm = float(np.linalg.norm(vec))
        if norm > 0:
            vec /= norm
        return vec

    def embed_documents(self, texts: Sequence[str], batch_size: Optional[int] = None) -> np.ndarray:
        if not texts:
            return np.zeros((0, self._dim), dtype=np.float32)
        return np.stack([self._embed_one(t) for t in texts])


__all__ = ["HashingEmbedder", "tokenize_identifiers"]
