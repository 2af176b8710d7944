"""Intent handlers for the Libra engine.

This package contains the handlers the router dispatches to:
- retrieval: Hybrid retrieval and ranking (the default intent)
- aggregate: Copies/availability of a subject, exact catalog counts, casual replies

Each handler is a standalone async function that takes:
- params: dict[str, Any] - Values extracted by the route matcher
- ctx: HandlerContext - Store, catalog index and ranking components

And returns:
- IntentResult with items, results_found and (for direct answers) the reply
"""

from .aggregate import (
    handle_availability_of,
    handle_casual,
    handle_catalog_count,
    handle_copies_of,
)
from .base import CatalogReader, HandlerContext, HandlerFunc, IntentResult
from .retrieval import handle_retrieval, retrieve

__all__ = [
    # Base
    "CatalogReader",
    "HandlerContext",
    "HandlerFunc",
    "IntentResult",
    # Retrieval
    "handle_retrieval",
    "retrieve",
    # Aggregate handlers
    "handle_availability_of",
    "handle_casual",
    "handle_catalog_count",
    "handle_copies_of",
]
