"""FastAPI dependency injection functions.

This module contains shared dependencies for API endpoints:
- Application state (store, catalog index, engine, indexer)
- Error sanitization
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from ..engine import LibraryEngine
from ..engine.core.vocabulary import CatalogIndexHolder
from ..services.indexer import EmbeddingIndexer

logger = logging.getLogger(__name__)


# ============ ERROR SANITIZATION ============


def sanitize_error_message(error: Exception) -> str:
    """
    Sanitize error messages to prevent information disclosure.

    Returns a generic message for unexpected errors while preserving
    useful information for known error types.
    """
    error_str = str(error)

    # Known safe error patterns that can be returned to client
    safe_patterns = [
        "Query is required",
        "Query exceeds",
        "Search failed during",
        "Books file not found",
        "Invalid books file",
    ]

    for pattern in safe_patterns:
        if pattern.lower() in error_str.lower():
            return error_str

    logger.error(f"Request error: {error}", exc_info=error)
    return "An error occurred processing your request. Please try again."


# ============ APPLICATION STATE ============


@dataclass
class LibraState:
    """Process-wide objects created at startup.

    Attributes:
        store: Catalog store client
        index_holder: Current catalog index
        engine: Query engine
        embedder: Embedding provider, None when semantic scoring is disabled
        indexer: Embedding back-fill runner, None without an embedder
    """

    store: object
    index_holder: CatalogIndexHolder
    engine: LibraryEngine
    embedder: object | None = None
    indexer: EmbeddingIndexer | None = None
    background_tasks: set[asyncio.Task] = field(default_factory=set)

    def schedule_backfill(self) -> asyncio.Task | None:
        """Start an embedding back-fill in the background, if one can run."""
        if self.indexer is None:
            return None
        task = asyncio.create_task(self._run_backfill())
        # Keep a reference until done so the task is not garbage collected
        self.background_tasks.add(task)
        task.add_done_callback(self.background_tasks.discard)
        return task

    async def _run_backfill(self) -> None:
        try:
            await self.indexer.backfill()
        except Exception as e:
            logger.warning(f"Background embedding backfill failed: {e}")


def get_state(request: Request) -> LibraState:
    """Get the application state created by the lifespan handler."""
    state = getattr(request.app.state, "libra", None)
    if state is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return state


def get_engine(state: Annotated[LibraState, Depends(get_state)]) -> LibraryEngine:
    return state.engine
