"""Embedding provider backed by sentence-transformers.

One process-wide model instance; encoding runs in a worker thread so the
event loop keeps serving other requests while a batch is embedded.
"""

import asyncio
import logging
import threading

from sentence_transformers import SentenceTransformer

from ..config import settings

logger = logging.getLogger(__name__)


class EmbeddingsService:
    """Batch text → normalized embedding vectors with a single model."""

    _instance: "EmbeddingsService | None" = None
    _instance_lock = threading.Lock()

    def __init__(self, model_name: str | None = None, device: str | None = None, batch_size: int | None = None):
        self._model_name = model_name or settings.embed_model
        self.device = device or settings.embed_device
        self.batch_size = batch_size or settings.embed_batch_size
        self._model: SentenceTransformer | None = None
        self._load_lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> "EmbeddingsService":
        """Get the shared service instance (model loads lazily)."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    @property
    def model_name(self) -> str:
        return self._model_name

    def is_loaded(self) -> bool:
        return self._model is not None

    def load(self) -> SentenceTransformer:
        """Load the model once; safe to call from several threads."""
        with self._load_lock:
            if self._model is None:
                logger.info(f"Loading embedding model '{self._model_name}' on {self.device}")
                self._model = SentenceTransformer(self._model_name, device=self.device)
            return self._model

    def embed_texts(self, texts: list[str]) -> list[list[float] | None]:
        """Embed texts synchronously. Blank texts get no vector."""
        if not texts:
            return []
        model = self.load()
        indices = [i for i, t in enumerate(texts) if t and t.strip()]
        result: list[list[float] | None] = [None] * len(texts)
        if not indices:
            return result
        vectors = model.encode(
            [texts[i] for i in indices],
            batch_size=self.batch_size,
            normalize_embeddings=True,
            show_progress_bar=False,
        )
        for i, vector in zip(indices, vectors):
            result[i] = vector.tolist()
        return result

    async def embed(self, texts: list[str]) -> list[list[float] | None]:
        """Embed texts without blocking the event loop."""
        return await asyncio.to_thread(self.embed_texts, texts)
