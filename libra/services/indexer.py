"""Embedding back-fill for catalog items.

Items whose embedding is missing, has the wrong dimension, or was computed
with another model are re-embedded and written back to the store. Requests
running while a back-fill is in progress simply see those items as not
semantically scorable.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..engine.core.item import Item
from ..engine.scoring.semantic_scorer import EmbeddingProvider

if TYPE_CHECKING:
    from ..db import CatalogStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 64


def embedding_text(item: Item) -> str:
    """Text embedded for an item: title plus author."""
    if item.author:
        return f"{item.title} by {item.author}"
    return item.title


@dataclass
class BackfillResult:
    scanned: int = 0
    stale: int = 0
    embedded: int = 0
    written: int = 0


class EmbeddingIndexer:
    """Computes and writes back item embeddings."""

    def __init__(self, store: "CatalogStore", provider: EmbeddingProvider, batch_size: int = DEFAULT_BATCH_SIZE):
        self.store = store
        self.provider = provider
        self.batch_size = batch_size

    def needs_embedding(self, item: Item, dimension: int | None) -> bool:
        if not item.title:
            return False
        if item.embedding is None or item.embedding_model != self.provider.model_name:
            return True
        return dimension is not None and len(item.embedding) != dimension

    async def backfill(self, items: list[Item] | None = None) -> BackfillResult:
        """Embed every stale item and write the vectors back.

        Args:
            items: Catalog snapshot; fetched from the store when omitted.

        Returns:
            Counts of scanned, stale, embedded and written items.
        """
        if items is None:
            items = await self.store.bulk_fetch()

        result = BackfillResult(scanned=len(items))
        dimension = self._reference_dimension(items)
        stale = [item for item in items if self.needs_embedding(item, dimension)]
        result.stale = len(stale)
        if not stale:
            logger.info(f"Embedding backfill: all {len(items)} items are current")
            return result

        for start in range(0, len(stale), self.batch_size):
            batch = stale[start : start + self.batch_size]
            vectors = await self.provider.embed([embedding_text(item) for item in batch])

            updated: list[Item] = []
            for item, vector in zip(batch, vectors):
                if not vector:
                    continue
                item.embedding = list(vector)
                item.embedding_model = self.provider.model_name
                updated.append(item)

            result.embedded += len(updated)
            result.written += await self.store.bulk_update(updated)
            # Yield between batches so request handlers are not starved
            await asyncio.sleep(0)

        logger.info(
            f"Embedding backfill: scanned={result.scanned}, stale={result.stale}, "
            f"embedded={result.embedded}, written={result.written}"
        )
        return result

    def _reference_dimension(self, items: list[Item]) -> int | None:
        # The most common dimension among current-model vectors
        counts: dict[int, int] = {}
        for item in items:
            if item.embedding is not None and item.embedding_model == self.provider.model_name:
                counts[len(item.embedding)] = counts.get(len(item.embedding), 0) + 1
        if not counts:
            return None
        return max(counts, key=lambda d: counts[d])
