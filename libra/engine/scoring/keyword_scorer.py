"""Keyword scoring for the Libra search engine.

This module provides the lexical half of hybrid search:
- Full-text query construction for the store's Lucene-style search index
- Lexical relevance scoring of the items the store returned
"""

import logging
import re
from collections.abc import Iterable

from ..core.item import Item, ScoredCandidate
from .constants import (
    CODING_BONUS,
    CODING_ITEM_KEYWORDS,
    CODING_QUERY_KEYWORDS,
    DSA_QUERY_TERMS,
    LEXICAL_BASE_SCORE,
    LEXICAL_MATCH_WEIGHT,
    PREFIX_WILDCARD_MIN_LENGTH,
)

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _keyword_pattern(keywords: tuple[str, ...]) -> re.Pattern[str]:
    # Longest first so "data structures" wins over "data structure";
    # lookarounds instead of \b so "c++" and "c#" still match
    alternatives = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"(?<![\w+#])(?:{alternatives})(?![\w+#])")


_CODING_QUERY_RE = _keyword_pattern(CODING_QUERY_KEYWORDS)
_DSA_QUERY_RE = _keyword_pattern(DSA_QUERY_TERMS)


def is_coding_query(query: str) -> bool:
    """Check if the query asks for programming / software material."""
    return bool(_CODING_QUERY_RE.search(query.lower()))


def is_dsa_query(query: str) -> bool:
    """Check if the query asks for data structures and algorithms."""
    return bool(_DSA_QUERY_RE.search(query.lower()))


def build_lexical_query(tokens: Iterable[str]) -> str:
    """Build a disjunctive field-scoped full-text query.

    Every token contributes ``title:<t> OR author:<t>``; tokens of four or
    more characters also get a ``title:<t>*`` prefix clause, so "math"
    still reaches "mathematics". Tokens are processed in sorted order so the
    same token set always yields the same query string.

    Args:
        tokens: Expanded query tokens.

    Returns:
        The query string, or "" when no token survives cleaning. Callers
        must not send an empty query to the store.
    """
    clauses: list[str] = []
    seen: set[str] = set()

    for token in sorted(set(tokens)):
        clean = _NON_ALNUM.sub("", token.lower())
        if not clean or clean in seen:
            continue
        seen.add(clean)
        clauses.append(f"title:{clean}")
        clauses.append(f"author:{clean}")
        if len(clean) >= PREFIX_WILDCARD_MIN_LENGTH:
            clauses.append(f"title:{clean}*")

    return " OR ".join(clauses)


def has_coding_keyword(item: Item) -> bool:
    """True if the item's title or author mentions a coding keyword."""
    text = item.search_text
    return any(keyword in text for keyword in CODING_ITEM_KEYWORDS)


def calculate_keyword_score(item: Item, tokens: Iterable[str], coding_query: bool = False) -> float:
    """Calculate the lexical relevance score for an item.

    ``score = 1 + matched / 10`` where *matched* counts expanded tokens that
    occur as substrings of "title author", plus a fixed bonus when the query
    is a coding query and the item looks like a coding book.

    Args:
        item: The item to score.
        tokens: Expanded query tokens.
        coding_query: Whether the query was classified as a coding query.

    Returns:
        Lexical score, always >= 1.
    """
    text = item.search_text
    matched = sum(1 for token in set(tokens) if token and token.lower() in text)
    score = LEXICAL_BASE_SCORE + matched * LEXICAL_MATCH_WEIGHT
    if coding_query and has_coding_keyword(item):
        score += CODING_BONUS
    return score


def score_lexical_candidates(
    items: Iterable[Item],
    tokens: Iterable[str],
    coding_query: bool = False,
) -> list[ScoredCandidate]:
    """Score the items returned by the store's lexical search.

    Duplicate ids keep their first occurrence.
    """
    token_set = set(tokens)
    seen: set[str] = set()
    candidates: list[ScoredCandidate] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        candidates.append(
            ScoredCandidate(
                item_id=item.id,
                score=calculate_keyword_score(item, token_set, coding_query),
                item=item,
                source="lexical",
            )
        )
    return candidates
