"""Request models for the Libra API."""

from typing import Any

from pydantic import BaseModel, Field


class AskRequest(BaseModel):
    """Body of POST /ask-ai."""

    query: Any = Field(default=None, description="Natural-language question about the catalog")


class ImportBooksRequest(BaseModel):
    """Body of POST /import-books; omit `books` to import the configured JSON file."""

    books: list[dict[str, Any]] | None = Field(
        default=None, description="Book documents to insert (title, author, copies, ...)"
    )
