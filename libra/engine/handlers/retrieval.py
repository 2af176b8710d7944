"""Hybrid retrieval handler.

Handles the default intent: auxiliary intent hints and an optional page
ceiling are detected, the boosted text is expanded, and the lexical and
semantic paths feed the HybridRanker.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from ...errors import CollaboratorUnavailable, RetrievalFailure
from ...models import IntentKind
from ..core.item import Item
from ..core.query import detect_query_hints
from ..scoring.fusion import ItemFilter
from ..scoring.keyword_scorer import build_lexical_query
from .base import HandlerContext, IntentResult

logger = logging.getLogger(__name__)


async def _fetch_candidates(
    ctx: HandlerContext, lexical_query: str, raw_query: str
) -> tuple[list[Item], list[Item]]:
    """Run the lexical search and the bulk fetch concurrently.

    Returns:
        Tuple of (lexical items in search order, full catalog snapshot).

    Raises:
        RetrievalFailure: If either store call fails.
    """
    try:
        item_ids, catalog = await asyncio.gather(
            ctx.store.lexical_search(lexical_query, ctx.lexical_limit),
            ctx.store.bulk_fetch(),
        )
        by_id = {item.id: item for item in catalog}
        missing = [item_id for item_id in item_ids if item_id not in by_id]
        if missing:
            # Indexed after the snapshot was taken
            for item in await ctx.store.get_items(missing):
                by_id[item.id] = item
    except CollaboratorUnavailable as e:
        logger.error(f"Retrieval failed during {e.operation} for query '{raw_query}': {e}")
        raise RetrievalFailure(e.operation, raw_query) from e

    lexical_items = [by_id[item_id] for item_id in item_ids if item_id in by_id]
    return lexical_items, catalog


async def retrieve(
    ctx: HandlerContext,
    text: str,
    raw_query: str | None = None,
    semantic_text: str | None = None,
    item_filters: Sequence[ItemFilter] = (),
) -> list[Item]:
    """Run the full hybrid pipeline for one query text.

    Args:
        ctx: Handler context.
        text: Text to expand for the lexical path (may include boost terms).
        raw_query: The user's query, used for coding/DSA detection.
        semantic_text: Text embedded for the semantic path (defaults to text).
        item_filters: Extra filters applied before deduplication and top-N.

    Returns:
        Final ranked items; empty when the text has no retrievable content.

    Raises:
        RetrievalFailure: If the lexical search or bulk fetch fails.
    """
    raw_query = raw_query if raw_query is not None else text
    tokens = ctx.expander.expand(text)
    if not tokens:
        logger.info(f"No retrievable tokens in '{text}'")
        return []

    lexical_query = build_lexical_query(tokens)
    if not lexical_query:
        return []

    lexical_items, catalog = await _fetch_candidates(ctx, lexical_query, raw_query)
    semantic_candidates = await ctx.semantic.score(semantic_text or text, catalog)

    return ctx.ranker.rank(
        lexical_items,
        semantic_candidates,
        tokens,
        raw_query,
        item_filters=item_filters,
    )


async def handle_retrieval(
    params: dict[str, Any],
    ctx: HandlerContext,
) -> IntentResult:
    """Answer a free-form catalog query with the hybrid pipeline.

    Args:
        params: Dict containing:
            - query: The raw user query

    Returns:
        IntentResult whose items still need rendering
    """
    query = params["query"]
    hints = detect_query_hints(query)

    filters: list[ItemFilter] = []
    if hints.page_limit is not None:
        limit = hints.page_limit
        filters.append(lambda item: item.max_pages is not None and item.max_pages <= limit)

    items = await retrieve(
        ctx,
        hints.boosted_text,
        raw_query=query,
        semantic_text=hints.search_text,
        item_filters=filters,
    )
    return IntentResult(intent=IntentKind.RETRIEVAL, items=items, results_found=len(items))
