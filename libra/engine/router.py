"""Intent routing for catalog queries.

Rules are tried in order and the first match wins:
1. Copies of a subject
2. Availability of a subject
3. Catalog counts (total / available / copies / topic)
4. Casual, non-catalog queries
5. Retrieval (always matches)

A matcher returns the params for its handler, or None when it does not apply.
"""

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from ..models import AggregateKind, IntentKind
from .handlers import (
    HandlerContext,
    HandlerFunc,
    IntentResult,
    handle_availability_of,
    handle_casual,
    handle_catalog_count,
    handle_copies_of,
    handle_retrieval,
)
from .scoring.constants import CATALOG_KEYWORDS
from .scoring.expander import extract_tokens

logger = logging.getLogger(__name__)

Matcher = Callable[[str], dict[str, Any] | None]

# "how many copies of X", "how many copies do you have of X"
_COPIES_OF_RE = re.compile(
    r"\bhow many copies\b[^?.!]*?\s(?:of|for)\s+(?P<subject>.+)",
    re.IGNORECASE,
)
_AVAILABILITY_RES = (
    re.compile(r"^\s*(?:is|are)\s+(?P<subject>.+?)\s+available\b", re.IGNORECASE),
    re.compile(r"\bavailability\s+of\s+(?P<subject>.+)", re.IGNORECASE),
)
_COUNT_RE = re.compile(
    r"(?:\bhow many\b|\bnumber of\b|\bcount of\b|^\s*total\b)\s*(?P<before>.*?)\s*"
    r"\b(?P<noun>books?|titles?|items?|copies)\b"
    # The topic may follow filler: "books do you have on python", "books by tolkien"
    r"(?:\s+[^?.!]*?\b(?:on|about|for|in|by|of)\s+(?P<after>[^?.!]+))?",
    re.IGNORECASE,
)
_AVAILABLE_RE = re.compile(r"\bavailable\b", re.IGNORECASE)

# Words that say "count" rather than naming a topic
_COUNT_NOISE = frozenset(
    {
        "total",
        "all",
        "many",
        "catalog",
        "inventory",
        "collection",
        "stock",
        "currently",
        "right",
        "now",
        "here",
        "held",
        "borrow",
        "borrowing",
        "loan",
    }
)


def match_copies_of(query: str) -> dict[str, Any] | None:
    match = _COPIES_OF_RE.search(query)
    if not match:
        return None
    return {"query": query, "subject": match.group("subject")}


def match_availability_of(query: str) -> dict[str, Any] | None:
    for pattern in _AVAILABILITY_RES:
        match = pattern.search(query)
        if match:
            return {"query": query, "subject": match.group("subject")}
    return None


def _topic_text(*parts: str | None) -> str:
    tokens = [t for part in parts if part for t in extract_tokens(part) if t not in _COUNT_NOISE]
    return " ".join(tokens)


def match_catalog_count(query: str) -> dict[str, Any] | None:
    """Classify count questions.

    "how many total books" → total books; "how many books are available" →
    available books; "total copies" → total copies; "how many python books"
    or "how many books on python" → topic count.
    """
    match = _COUNT_RE.search(query)
    if not match:
        return None

    if match.group("noun").lower() == "copies":
        return {"query": query, "kind": AggregateKind.TOTAL_COPIES}

    topic = _topic_text(match.group("before"), match.group("after"))
    if topic:
        return {"query": query, "kind": AggregateKind.TOPIC_COUNT, "topic": topic}
    if _AVAILABLE_RE.search(query):
        return {"query": query, "kind": AggregateKind.AVAILABLE_BOOKS}
    return {"query": query, "kind": AggregateKind.TOTAL_BOOKS}


def match_casual(query: str) -> dict[str, Any] | None:
    lowered = query.lower()
    if any(keyword in lowered for keyword in CATALOG_KEYWORDS):
        return None
    return {"query": query}


def match_retrieval(query: str) -> dict[str, Any] | None:
    return {"query": query}


@dataclass(frozen=True)
class RouteRule:
    """One routing rule: a matcher and the handler it dispatches to."""

    intent: IntentKind
    matcher: Matcher
    handler: HandlerFunc


DEFAULT_RULES: tuple[RouteRule, ...] = (
    RouteRule(IntentKind.COPIES_OF, match_copies_of, handle_copies_of),
    RouteRule(IntentKind.AVAILABILITY_OF, match_availability_of, handle_availability_of),
    RouteRule(IntentKind.AGGREGATE, match_catalog_count, handle_catalog_count),
    RouteRule(IntentKind.CASUAL, match_casual, handle_casual),
    RouteRule(IntentKind.RETRIEVAL, match_retrieval, handle_retrieval),
)


class IntentRouter:
    """Dispatches a query to the first rule whose matcher applies."""

    def __init__(self, rules: Sequence[RouteRule] | None = None):
        self.rules = tuple(rules) if rules is not None else DEFAULT_RULES

    def classify(self, query: str) -> tuple[RouteRule, dict[str, Any]]:
        """Find the first matching rule.

        Raises:
            LookupError: If no rule matches (only possible with custom rules).
        """
        for rule in self.rules:
            params = rule.matcher(query)
            if params is not None:
                return rule, params
        raise LookupError(f"No route for query '{query}'")

    async def dispatch(self, query: str, ctx: HandlerContext) -> IntentResult:
        rule, params = self.classify(query)
        logger.info(f"Routing '{query}' → {rule.intent.value}")
        return await rule.handler(params, ctx)
