"""Catalog-derived vocabulary index.

The CatalogIndex holds the two structures derived from a full catalog scan:
- TitleVocabulary: every title token, used to validate morphological guesses
- Auto-derived synonyms: title-token co-occurrence across the whole catalog

The index is immutable. It is built once at startup and replaced wholesale
by an explicit rebuild; it is never updated in place, so a catalog change
without a rebuild leaves the index stale until the next restart or rebuild.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING

from ..scoring.constants import STOP_WORDS
from .item import Item

if TYPE_CHECKING:
    from ...db import CatalogStore

logger = logging.getLogger(__name__)

TITLE_SPLIT_PATTERN = re.compile(r"[^a-z0-9+#]+")
MIN_TITLE_TOKEN_LENGTH = 3

DEFAULT_MIN_COOCCURRENCE = 2
DEFAULT_MAX_SYNONYMS = 6


def tokenize_title(title: str) -> list[str]:
    """Split a title into lowercase tokens of length > 2, first occurrence order."""
    seen: set[str] = set()
    tokens: list[str] = []
    for token in TITLE_SPLIT_PATTERN.split(title.lower()):
        if len(token) >= MIN_TITLE_TOKEN_LENGTH and token not in seen:
            seen.add(token)
            tokens.append(token)
    return tokens


@dataclass(frozen=True)
class CatalogIndex:
    """Read-only index derived from one catalog snapshot.

    Attributes:
        title_vocabulary: All title tokens (length > 2, lowercased)
        auto_synonyms: token → co-occurring title tokens, best first
        item_count: Number of items in the snapshot
        built_at: When the snapshot was indexed
    """

    title_vocabulary: frozenset[str] = frozenset()
    auto_synonyms: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    item_count: int = 0
    built_at: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return self.built_at is None


def build_catalog_index(
    items: Iterable[Item],
    min_count: int = DEFAULT_MIN_COOCCURRENCE,
    max_synonyms: int = DEFAULT_MAX_SYNONYMS,
) -> CatalogIndex:
    """Build the title vocabulary and co-occurrence synonym table.

    Every unordered pair of distinct title tokens in the same title counts
    once per title, in both directions. Stop words take part in the
    vocabulary but not in co-occurrence, since "and" or "with" would
    otherwise become a synonym of everything.

    Args:
        items: Full catalog snapshot.
        min_count: Minimum co-occurrence count for a pair to be kept.
        max_synonyms: Maximum related tokens kept per token.

    Returns:
        A frozen CatalogIndex.
    """
    vocabulary: set[str] = set()
    # Nested dicts keep first-seen order, which is the tie-break on equal counts
    cooccurrence: dict[str, dict[str, int]] = {}
    item_count = 0

    for item in items:
        item_count += 1
        tokens = tokenize_title(item.title)
        vocabulary.update(tokens)

        content_tokens = [t for t in tokens if t not in STOP_WORDS]
        for token in content_tokens:
            related = cooccurrence.setdefault(token, {})
            for other in content_tokens:
                if other != token:
                    related[other] = related.get(other, 0) + 1

    auto_synonyms: dict[str, tuple[str, ...]] = {}
    for token, related in cooccurrence.items():
        kept = [(other, count) for other, count in related.items() if count >= min_count]
        if not kept:
            continue
        kept.sort(key=lambda pair: pair[1], reverse=True)
        auto_synonyms[token] = tuple(other for other, _ in kept[:max_synonyms])

    index = CatalogIndex(
        title_vocabulary=frozenset(vocabulary),
        auto_synonyms=MappingProxyType(auto_synonyms),
        item_count=item_count,
        built_at=datetime.now(UTC),
    )
    logger.info(
        f"Catalog index built: {item_count} items, {len(vocabulary)} title tokens, "
        f"{len(auto_synonyms)} auto-synonym entries"
    )
    return index


class CatalogIndexHolder:
    """Process-wide holder for the current CatalogIndex.

    Readers take `holder.current` once per request; `rebuild` swaps in a new
    index with a single reference assignment, so in-flight requests keep the
    snapshot they started with.
    """

    def __init__(
        self,
        index: CatalogIndex | None = None,
        min_count: int = DEFAULT_MIN_COOCCURRENCE,
        max_synonyms: int = DEFAULT_MAX_SYNONYMS,
    ):
        self._index = index or CatalogIndex()
        self.min_count = min_count
        self.max_synonyms = max_synonyms

    @property
    def current(self) -> CatalogIndex:
        return self._index

    def replace(self, items: Iterable[Item]) -> CatalogIndex:
        """Build a new index from items and make it current."""
        self._index = build_catalog_index(items, self.min_count, self.max_synonyms)
        return self._index

    async def rebuild(self, store: "CatalogStore") -> CatalogIndex:
        """Rebuild from a full catalog scan.

        Raises:
            CollaboratorUnavailable: If the bulk fetch fails. The previous
                index stays current.
        """
        items = await store.bulk_fetch()
        return self.replace(items)

    def is_stale(self, item_count: int) -> bool:
        """True if the index was never built or the catalog size has changed."""
        index = self._index
        return index.is_empty or index.item_count != item_count
