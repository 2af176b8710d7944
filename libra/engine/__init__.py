"""Libra search engine.

- core: Item data structures, query hints, the catalog vocabulary index
- scoring: Expansion, lexical/semantic scoring, fusion and ranking
- handlers: Intent handlers (retrieval, aggregates, casual)
- router: Ordered intent rules
- library_engine: Request entry point
"""

from .library_engine import LibraryEngine, Renderer
from .router import IntentRouter, RouteRule

__all__ = [
    "IntentRouter",
    "LibraryEngine",
    "Renderer",
    "RouteRule",
]
