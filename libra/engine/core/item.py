"""Catalog data structures for the Libra engine.

This module contains the core data structures for representing
catalog items and scored retrieval candidates.
"""

from dataclasses import dataclass, field
from typing import Any


def _coerce_copies(value: Any) -> int:
    # bool is an int subclass; true/false are not copy counts
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float) and value.is_integer():
        return max(int(value), 0)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


def _coerce_pages(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        pages = int(value)
    except (TypeError, ValueError):
        return None
    return pages if pages > 0 else None


def _coerce_available(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "available")
    return bool(value)


def _coerce_embedding(value: Any) -> list[float] | None:
    if not isinstance(value, list) or not value:
        return None
    try:
        return [float(v) for v in value]
    except (TypeError, ValueError):
        return None


@dataclass
class Item:
    """A catalog item (book).

    Attributes:
        id: Unique store-assigned identifier
        title: Book title
        author: Book author
        copies: Number of copies held (0 when absent or invalid)
        available: Whether at least one copy can be borrowed
        location: Shelf or branch location
        max_pages: Page count, when known
        embedding: Cached embedding vector, absent until computed
        embedding_model: Model tag the embedding was computed with
        rev: Store revision, required for write-back
        raw: The store document exactly as read; write-back starts from it
    """

    id: str
    title: str = ""
    author: str = ""
    copies: int = 0
    available: bool = False
    location: str = ""
    max_pages: int | None = None
    embedding: list[float] | None = None
    embedding_model: str | None = None
    rev: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Item":
        """Build an Item from a raw store document, applying field defaults."""
        return cls(
            id=str(doc.get("_id", "")),
            title=str(doc.get("title") or "").strip(),
            author=str(doc.get("author") or "").strip(),
            copies=_coerce_copies(doc.get("copies")),
            available=_coerce_available(doc.get("available", False)),
            location=str(doc.get("location") or "").strip(),
            max_pages=_coerce_pages(doc.get("max_pages", doc.get("maxPages"))),
            embedding=_coerce_embedding(doc.get("embedding")),
            embedding_model=doc.get("embedding_model"),
            rev=doc.get("_rev"),
            raw=dict(doc),
        )

    def to_document(self) -> dict[str, Any]:
        """Build the write-back document.

        Libra owns only the embedding fields. Every other field is copied
        from the original document untouched, so values the coercion above
        normalized (copies, availability, maxPages) are never rewritten.
        """
        doc: dict[str, Any] = {**self.raw, "_id": self.id}
        if self.rev:
            doc["_rev"] = self.rev
        if self.embedding is not None:
            doc["embedding"] = self.embedding
            doc["embedding_model"] = self.embedding_model
        return doc

    @property
    def search_text(self) -> str:
        """Lowercased "title author" text used for substring matching."""
        return f"{self.title} {self.author}".lower()

    @property
    def dedupe_key(self) -> tuple[str, str]:
        """Normalized (title, author) pair."""
        return (" ".join(self.title.lower().split()), " ".join(self.author.lower().split()))

    def has_valid_embedding(self, model_name: str, dimension: int) -> bool:
        """True if the cached embedding can be trusted for this model and size."""
        return (
            self.embedding is not None
            and self.embedding_model == model_name
            and len(self.embedding) == dimension
        )


@dataclass
class ScoredCandidate:
    """An item scored by one retrieval path (lexical, semantic or fused)."""

    item_id: str
    score: float
    item: Item
    source: str  # "lexical" | "semantic" | "fused"
