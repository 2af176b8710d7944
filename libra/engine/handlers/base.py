"""Base infrastructure for intent handlers.

This module provides the common types used by all handler modules.
Each handler receives the params extracted by its route matcher plus a
HandlerContext with shared state, and returns an IntentResult.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine, Protocol

from ...models import IntentKind
from ..core.item import Item
from ..core.vocabulary import CatalogIndexHolder
from ..scoring.expander import QueryExpander
from ..scoring.fusion import HybridRanker
from ..scoring.semantic_scorer import SemanticScorer


class CatalogReader(Protocol):
    """The store operations the request path needs."""

    async def bulk_fetch(self) -> list[Item]: ...

    async def lexical_search(self, query: str, limit: int) -> list[str]: ...

    async def get_items(self, item_ids: list[str]) -> list[Item]: ...


@dataclass
class HandlerContext:
    """Context object passed to all handlers.

    Holds the collaborators and ranking components for one request. The
    catalog index is read from the holder once, when the context is created,
    so a concurrent rebuild never changes the index mid-request.
    """

    store: CatalogReader
    index_holder: CatalogIndexHolder
    semantic: SemanticScorer
    ranker: HybridRanker
    lexical_limit: int = 20
    expander: QueryExpander = field(init=False)

    def __post_init__(self) -> None:
        self.expander = QueryExpander(self.index_holder.current)


@dataclass
class IntentResult:
    """Outcome of one handler.

    Attributes:
        intent: Which intent handled the query
        items: Items behind the reply, best first
        results_found: Matching item count, or the counted total for aggregates
        reply: Final reply text; None when the items still need rendering
    """

    intent: IntentKind
    items: list[Item] = field(default_factory=list)
    results_found: int = 0
    reply: str | None = None

    @property
    def needs_rendering(self) -> bool:
        return self.reply is None


# Type alias for handler functions
HandlerFunc = Callable[
    [dict[str, Any], HandlerContext],
    Coroutine[Any, Any, IntentResult],
]


def plural(count: int, singular: str, plural_form: str | None = None) -> str:
    """Format "1 book" / "2 books"."""
    word = singular if count == 1 else (plural_form or f"{singular}s")
    return f"{count} {word}"
