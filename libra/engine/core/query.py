"""Query classification and hint extraction utilities.

This module provides the regex-level signals the router and ranker use:
- Coding / DSA intent detection
- Auxiliary intent hints and their boost terms
- Page-count ceilings ("under 400 pages")
- Filler stripping for "how many copies of X" style subjects
"""

import logging
import re
from dataclasses import dataclass, field

from ..scoring.constants import INTENT_HINTS, PAGE_LIMIT_PATTERN, SUBJECT_FILLER_PATTERNS
from ..scoring.keyword_scorer import is_coding_query, is_dsa_query

logger = logging.getLogger(__name__)

_PAGE_LIMIT_RE = re.compile(PAGE_LIMIT_PATTERN, re.IGNORECASE)
_HINT_RES = {
    name: (re.compile(pattern, re.IGNORECASE), boost) for name, (pattern, boost) in INTENT_HINTS.items()
}
_FILLER_RES = tuple(re.compile(p, re.IGNORECASE) for p in SUBJECT_FILLER_PATTERNS)

__all__ = [
    "QueryHints",
    "detect_query_hints",
    "extract_page_limit",
    "is_coding_query",
    "is_dsa_query",
    "strip_subject_filler",
]


def extract_page_limit(query: str) -> tuple[int | None, str]:
    """Find a page-count ceiling and remove it from the query text.

    Args:
        query: Query string to check.

    Returns:
        Tuple of (limit or None, query without the ceiling phrase).
    """
    match = _PAGE_LIMIT_RE.search(query)
    if not match:
        return None, query
    limit = int(match.group(1))
    remaining = " ".join((query[: match.start()] + " " + query[match.end() :]).split())
    return (limit if limit > 0 else None), remaining


@dataclass
class QueryHints:
    """Auxiliary signals detected in a retrieval query.

    Attributes:
        hints: Names of the matched intent hints, in definition order
        boost_terms: Terms appended to the query text before expansion
        page_limit: Maximum page count, when the query states one
        search_text: Query text with the page-ceiling phrase removed
    """

    hints: list[str] = field(default_factory=list)
    boost_terms: list[str] = field(default_factory=list)
    page_limit: int | None = None
    search_text: str = ""

    @property
    def boosted_text(self) -> str:
        """Search text with boost terms appended."""
        if not self.boost_terms:
            return self.search_text
        return f"{self.search_text} {' '.join(self.boost_terms)}"


def detect_query_hints(query: str) -> QueryHints:
    """Detect intent hints and the page ceiling in a retrieval query."""
    page_limit, search_text = extract_page_limit(query)
    hints = QueryHints(page_limit=page_limit, search_text=search_text)

    for name, (pattern, boost) in _HINT_RES.items():
        if pattern.search(search_text):
            hints.hints.append(name)
            hints.boost_terms.append(boost)

    if hints.hints or page_limit is not None:
        logger.info(f"Query hints for '{query}': hints={hints.hints}, page_limit={page_limit}")
    return hints


def strip_subject_filler(subject: str) -> str:
    """Remove filler phrases and punctuation from an extracted subject.

    "the python books in the library?" → "python"
    """
    cleaned = subject.lower()
    for pattern in _FILLER_RES:
        cleaned = pattern.sub(" ", cleaned)
    cleaned = re.sub(r"[^\w\s+#'-]", " ", cleaned)
    return " ".join(cleaned.split())
