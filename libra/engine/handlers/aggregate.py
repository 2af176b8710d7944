"""Aggregate and statistical handlers.

Handles:
- Copies of a subject: "how many copies of X"
- Availability of a subject: "is X available", "availability of X"
- Catalog counts: total books, available books, total copies, books on a topic
- Casual / non-catalog queries

Subject questions run the retrieval pipeline on the subject; catalog counts
are computed from a full bulk fetch and never go through ranking, so the
numbers are exact.
"""

import logging
from typing import Any

from ...errors import CollaboratorUnavailable, RetrievalFailure
from ...models import AggregateKind, IntentKind
from ..core.item import Item
from ..core.query import strip_subject_filler
from ..scoring.constants import CASUAL_REPLY
from .base import HandlerContext, IntentResult, plural
from .retrieval import retrieve

logger = logging.getLogger(__name__)


async def _fetch_catalog(ctx: HandlerContext, query: str) -> list[Item]:
    try:
        return await ctx.store.bulk_fetch()
    except CollaboratorUnavailable as e:
        logger.error(f"Aggregate failed during {e.operation} for query '{query}': {e}")
        raise RetrievalFailure(e.operation, query) from e


def _no_match_reply(subject: str) -> str:
    return f'No matching books found for "{subject}" in the library inventory.'


async def handle_copies_of(
    params: dict[str, Any],
    ctx: HandlerContext,
) -> IntentResult:
    """Count matching books for a subject and sum their copies.

    Args:
        params: Dict containing:
            - query: The raw user query
            - subject: Text after "how many copies of/for"

    Returns:
        IntentResult with the matching items and a direct reply
    """
    query = params["query"]
    subject = strip_subject_filler(params.get("subject", ""))
    if not subject:
        return await handle_catalog_count({"query": query, "kind": AggregateKind.TOTAL_COPIES}, ctx)

    items = await retrieve(ctx, subject, raw_query=subject)
    if not items:
        return IntentResult(intent=IntentKind.COPIES_OF, reply=_no_match_reply(subject))

    total_copies = sum(item.copies for item in items)
    reply = (
        f'Found {plural(len(items), "matching book")} for "{subject}" '
        f"with {plural(total_copies, 'copy', 'copies')} in total."
    )
    return IntentResult(
        intent=IntentKind.COPIES_OF,
        items=items,
        results_found=len(items),
        reply=reply,
    )


async def handle_availability_of(
    params: dict[str, Any],
    ctx: HandlerContext,
) -> IntentResult:
    """Report how many matching books are available, with copy totals.

    Args:
        params: Dict containing:
            - query: The raw user query
            - subject: The X in "is X available" / "availability of X"

    Returns:
        IntentResult with the matching items and a direct reply
    """
    query = params["query"]
    subject = strip_subject_filler(params.get("subject", ""))
    if not subject:
        return await handle_catalog_count({"query": query, "kind": AggregateKind.AVAILABLE_BOOKS}, ctx)

    items = await retrieve(ctx, subject, raw_query=subject)
    if not items:
        return IntentResult(intent=IntentKind.AVAILABILITY_OF, reply=_no_match_reply(subject))

    available = [item for item in items if item.available]
    all_copies = sum(item.copies for item in items)
    available_copies = sum(item.copies for item in available)
    reply = (
        f'Found {plural(len(items), "matching book")} for "{subject}": '
        f"{len(available)} available ({plural(available_copies, 'copy', 'copies')}) "
        f"out of {len(items)} ({plural(all_copies, 'copy', 'copies')} in total)."
    )
    return IntentResult(
        intent=IntentKind.AVAILABILITY_OF,
        items=items,
        results_found=len(items),
        reply=reply,
    )


def _matches_any(item: Item, aliases: set[str]) -> bool:
    text = item.search_text
    return any(alias in text for alias in aliases)


async def handle_catalog_count(
    params: dict[str, Any],
    ctx: HandlerContext,
) -> IntentResult:
    """Compute an exact statistic over the full catalog.

    Args:
        params: Dict containing:
            - query: The raw user query
            - kind: AggregateKind to compute
            - topic: Topic text, for AggregateKind.TOPIC_COUNT

    Returns:
        IntentResult whose results_found is the counted total
    """
    query = params["query"]
    kind = AggregateKind(params["kind"])
    topic = params.get("topic", "")
    catalog = await _fetch_catalog(ctx, query)

    if kind == AggregateKind.TOPIC_COUNT:
        aliases = ctx.expander.expand(topic)
        if not aliases:
            kind = AggregateKind.TOTAL_BOOKS
        else:
            matched = [item for item in catalog if _matches_any(item, aliases)]
            available = sum(1 for item in matched if item.available)
            logger.info(f"Topic count '{topic}': aliases={sorted(aliases)}, matched={len(matched)}")
            return IntentResult(
                intent=IntentKind.AGGREGATE,
                items=matched,
                results_found=len(matched),
                reply=(
                    f'There are {plural(len(matched), "book")} on "{topic}" in the library '
                    f"inventory ({available} currently available)."
                ),
            )

    total = len(catalog)
    if kind == AggregateKind.AVAILABLE_BOOKS:
        count = sum(1 for item in catalog if item.available)
        reply = f"{count} of {plural(total, 'book')} in the library inventory are currently available."
    elif kind == AggregateKind.TOTAL_COPIES:
        count = sum(item.copies for item in catalog)
        reply = (
            f"The library holds {plural(count, 'copy', 'copies')} in total "
            f"across {plural(total, 'book')}."
        )
    else:
        count = total
        reply = f"There are {plural(total, 'book')} in the library inventory."

    logger.info(f"Catalog count {kind.value}: {count}")
    return IntentResult(intent=IntentKind.AGGREGATE, results_found=count, reply=reply)


async def handle_casual(
    params: dict[str, Any],
    ctx: HandlerContext,
) -> IntentResult:
    """Redirect a non-catalog query without touching any collaborator."""
    return IntentResult(intent=IntentKind.CASUAL, reply=CASUAL_REPLY)
