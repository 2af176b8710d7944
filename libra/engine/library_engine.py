"""Libra engine: routes a query, runs the matching handler, renders the reply.

The engine owns the process-wide pieces (catalog index holder, ranker,
semantic scorer, router) and builds a fresh HandlerContext per request.
"""

import logging
from typing import Any, Protocol

from ..errors import CollaboratorUnavailable, InputError
from ..models import AskResponse, BookInfo
from .core.formatting import EMPTY_REPLY_FALLBACK, NO_MATCH_CONTEXT, format_inventory_context
from .core.item import Item
from .core.vocabulary import CatalogIndexHolder
from .handlers import CatalogReader, HandlerContext, IntentResult
from .router import IntentRouter
from .scoring.constants import SEMANTIC_TOP_K, TOP_N
from .scoring.fusion import FusionStrategy, HybridRanker
from .scoring.semantic_scorer import EmbeddingProvider, SemanticScorer

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 1000


class Renderer(Protocol):
    """Formats the final item list into reply text."""

    async def format(self, items: list[Item], query: str) -> str: ...


class LibraryEngine:
    """Answers catalog questions.

    Usage:
        engine = LibraryEngine(store, index_holder, embedder, renderer)
        response = await engine.ask("python books for beginners")
    """

    def __init__(
        self,
        store: CatalogReader,
        index_holder: CatalogIndexHolder,
        embedder: EmbeddingProvider | None = None,
        renderer: Renderer | None = None,
        router: IntentRouter | None = None,
        strategy: FusionStrategy | None = None,
        top_n: int = TOP_N,
        semantic_top_k: int = SEMANTIC_TOP_K,
        lexical_limit: int = 20,
    ):
        self.store = store
        self.index_holder = index_holder
        self.renderer = renderer
        self.router = router or IntentRouter()
        self.semantic = SemanticScorer(embedder, top_k=semantic_top_k)
        self.ranker = HybridRanker(strategy=strategy, top_n=top_n)
        self.lexical_limit = lexical_limit

    def context(self) -> HandlerContext:
        return HandlerContext(
            store=self.store,
            index_holder=self.index_holder,
            semantic=self.semantic,
            ranker=self.ranker,
            lexical_limit=self.lexical_limit,
        )

    @staticmethod
    def validate_query(query: Any) -> str:
        """Return the stripped query.

        Raises:
            InputError: If the query is not a non-empty string of sane length.
        """
        if not isinstance(query, str) or not query.strip():
            raise InputError("Query is required")
        query = query.strip()
        if len(query) > MAX_QUERY_LENGTH:
            raise InputError(f"Query exceeds {MAX_QUERY_LENGTH} characters")
        return query

    async def render(self, result: IntentResult, query: str) -> str:
        """Produce reply text for a handler result.

        Direct replies pass through. Ranked items go to the renderer; when
        the renderer is missing or fails, the plain inventory listing is used.
        """
        if result.reply is not None:
            return result.reply
        if not result.items:
            return NO_MATCH_CONTEXT
        if self.renderer is None:
            return format_inventory_context(result.items)

        try:
            reply = await self.renderer.format(result.items, query)
        except CollaboratorUnavailable as e:
            logger.warning(f"Renderer unavailable for query '{query}', using plain listing: {e}")
            return format_inventory_context(result.items)
        return reply or EMPTY_REPLY_FALLBACK

    async def ask(self, query: Any) -> AskResponse:
        """Answer one query.

        Raises:
            InputError: Before any collaborator call, for empty or invalid input.
            RetrievalFailure: If the catalog could not be searched.
        """
        query = self.validate_query(query)
        result = await self.router.dispatch(query, self.context())
        reply = await self.render(result, query)

        return AskResponse(
            query=query,
            intent=result.intent,
            results_found=result.results_found,
            reply=reply,
            books=[BookInfo.from_item(item) for item in result.items],
        )
