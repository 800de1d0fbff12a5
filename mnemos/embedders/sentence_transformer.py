"""
Sentence-Transformers Embedder - Optional model-backed provider

Loaded lazily so the runtime only needs ``sentence-transformers`` when this
backend is selected. Install with ``pip install mnemos[st]``.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from typing import Any, List, Optional, Sequence

import numpy as np

from .base import EmbedderBase, EmbeddingConfig, MissingDependencyError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


class SentenceTransformerEmbedder(EmbedderBase):
    """Wraps a ``SentenceTransformer`` model with normalised outputs."""

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig(backend="sentence-transformers")
        self._model: Any = None
        self._dim: Optional[int] = None

    @staticmethod
    def dependencies_available() -> bool:
        try:
            importlib.import_module("sentence_transformers")
        except ImportError:
            return False
        return True

    def is_loaded(self) -> bool:
        return self._model is not None

    def load(self) -> None:
        if self._model is not None:
            return
        try:
            module = importlib.import_module("sentence_transformers")
        except ImportError as exc:
            raise MissingDependencyError(
                "Missing embedding dependency: sentence-transformers. Install with `pip install mnemos[st]`."
            ) from exc
        model_name = self.config.model_name or DEFAULT_MODEL
        logger.info(f"Loading sentence-transformers model {model_name} on {self.config.device}")
        self._model = module.SentenceTransformer(model_name, device=self.config.device)
        dim = self._model.get_sentence_embedding_dimension()
        self._dim = int(dim) if dim is not None else None

    @property
    def dim(self) -> int:
        self.load()
        if self._dim is None:
            raise RuntimeError("sentence-transformers model reported no embedding dimension")
        return self._dim

    def embed_documents(self, texts: Sequence[str], batch_size: Optional[int] = None) -> np.ndarray:
        self.load()
        if not texts:
            return np.zeros((0, self.dim), dtype=np.float32)
        vectors = self._model.encode(
            list(texts),
            batch_size=batch_size or self.config.batch_size,
            normalize_embeddings=True,
            convert_to_numpy=True,
            show_progress_bar=False,
        )
        return np.asarray(vectors, dtype=np.float32)

    async def embed(self, text: str) -> List[float]:
        # encode() blocks; keep it off the event loop
        vectors = await asyncio.to_thread(self.embed_documents, [text], 1)
        return vectors[0].tolist()


__all__ = ["DEFAULT_MODEL", "SentenceTransformerEmbedder"]
