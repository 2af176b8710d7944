"""Engine core module.

This module contains core utilities and data structures for the Libra engine:
- Catalog item and candidate data structures
- Plain-text inventory listing
- Query classification and hint extraction
- The catalog-derived vocabulary index
"""

from .formatting import EMPTY_REPLY_FALLBACK, NO_MATCH_CONTEXT, format_inventory_context
from .item import Item, ScoredCandidate
from .query import (
    QueryHints,
    detect_query_hints,
    extract_page_limit,
    is_coding_query,
    is_dsa_query,
    strip_subject_filler,
)
from .vocabulary import (
    CatalogIndex,
    CatalogIndexHolder,
    build_catalog_index,
    tokenize_title,
)

__all__ = [
    # Data structures
    "Item",
    "ScoredCandidate",
    # Formatting
    "EMPTY_REPLY_FALLBACK",
    "NO_MATCH_CONTEXT",
    "format_inventory_context",
    # Query utilities
    "QueryHints",
    "detect_query_hints",
    "extract_page_limit",
    "is_coding_query",
    "is_dsa_query",
    "strip_subject_filler",
    # Vocabulary
    "CatalogIndex",
    "CatalogIndexHolder",
    "build_catalog_index",
    "tokenize_title",
]
