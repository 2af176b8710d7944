"""Response models for the Libra API."""

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from .enums import IntentKind

if TYPE_CHECKING:
    from ..engine.core.item import Item


class BookInfo(BaseModel):
    """A book as returned to clients (embeddings are never exposed)."""

    id: str = Field(..., description="Store identifier")
    title: str = Field(default="", description="Book title")
    author: str = Field(default="", description="Book author")
    copies: int = Field(default=0, ge=0, description="Copies held")
    available: bool = Field(default=False, description="Whether a copy can be borrowed")
    location: str = Field(default="", description="Shelf or branch location")
    max_pages: int | None = Field(default=None, description="Page count, when known")

    @classmethod
    def from_item(cls, item: "Item") -> "BookInfo":
        return cls(
            id=item.id,
            title=item.title,
            author=item.author,
            copies=item.copies,
            available=item.available,
            location=item.location,
            max_pages=item.max_pages,
        )


class AskResponse(BaseModel):
    """Response of POST /ask-ai."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = Field(default=True)
    query: str = Field(..., description="The query as received")
    intent: IntentKind = Field(..., description="Which path handled the query")
    results_found: int = Field(
        default=0, ge=0, alias="resultsFound", description="Matching books (or the counted total)"
    )
    reply: str = Field(..., description="Reply text")
    books: list[BookInfo] = Field(default_factory=list, description="Ranked books behind the reply")


class ErrorResponse(BaseModel):
    ok: bool = Field(default=False)
    error: str = Field(..., description="Generic error message")


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime


class ReadyResponse(BaseModel):
    status: str
    version: str
    checks: dict[str, bool]


class StoreProbeResponse(BaseModel):
    ok: bool = True
    database: str
    count: int = Field(default=0, ge=0, description="Documents in the database")


class ImportBooksResponse(BaseModel):
    ok: bool = True
    inserted: int = 0
    failed: int = 0
    total: int = 0


class RebuildIndexResponse(BaseModel):
    status: str = "ok"
    indexed: int = Field(default=0, ge=0, description="Items scanned")
    vocabulary_size: int = 0
    synonym_entries: int = 0


class BackfillResponse(BaseModel):
    status: str = "ok"
    scanned: int = 0
    stale: int = 0
    embedded: int = 0
    written: int = 0
