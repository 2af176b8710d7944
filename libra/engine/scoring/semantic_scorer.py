"""Semantic scoring for the Libra search engine.

Items carry pre-computed embeddings (back-filled by the indexer); only the
query is embedded per request. A failing provider degrades semantic scoring
to an empty candidate list instead of failing the request.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

import numpy as np

from ..core.item import Item, ScoredCandidate
from .constants import SEMANTIC_TOP_K

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    """Batch text → vector provider using one consistent model."""

    @property
    def model_name(self) -> str: ...

    async def embed(self, texts: list[str]) -> list[list[float] | None]:
        """Embed texts; output aligns 1:1 with input, None means no vector."""
        ...


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 when dimensions differ or either vector has zero magnitude.
    Never raises for numeric input.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0 or not np.isfinite(norm_a * norm_b):
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


class SemanticScorer:
    """Scores catalog items by cosine similarity to the query embedding."""

    def __init__(self, provider: EmbeddingProvider | None, top_k: int = SEMANTIC_TOP_K):
        """Initialize the semantic scorer.

        Args:
            provider: Embedding provider; None disables semantic scoring.
            top_k: Candidate cap handed to fusion (independent of the final top-N).
        """
        self.provider = provider
        self.top_k = top_k

    async def score(self, query_text: str, items: list[Item]) -> list[ScoredCandidate]:
        """Score items against the raw (unexpanded) query text.

        Args:
            query_text: The user's query, before any expansion.
            items: Full catalog snapshot.

        Returns:
            Up to top_k candidates sorted by descending similarity; empty if
            the provider is missing or fails.
        """
        if self.provider is None or not query_text.strip() or not items:
            return []

        try:
            vectors = await self.provider.embed([query_text])
        except Exception as e:
            logger.warning(f"Semantic scoring failed for query '{query_text}', using lexical only: {e}")
            return []

        query_vector = vectors[0] if vectors else None
        if not query_vector:
            logger.warning(f"Embedding provider returned no vector for query '{query_text}'")
            return []

        model_name = self.provider.model_name
        dimension = len(query_vector)
        candidates: list[ScoredCandidate] = []
        skipped = 0

        for item in items:
            if not item.has_valid_embedding(model_name, dimension):
                skipped += 1
                continue
            candidates.append(
                ScoredCandidate(
                    item_id=item.id,
                    score=cosine_similarity(query_vector, item.embedding),
                    item=item,
                    source="semantic",
                )
            )

        if skipped:
            logger.debug(f"{skipped} items without a valid '{model_name}' embedding were not scored")

        # Stable sort: equal similarities keep catalog order
        candidates.sort(key=lambda c: c.score, reverse=True)
        return candidates[: self.top_k]
