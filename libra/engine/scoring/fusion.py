"""Score fusion and ranking for hybrid search.

This module combines the lexical and semantic candidate lists into one
ranked, filtered, deduplicated result list.

The two paths score on unrelated scales (``1 + matches/10`` versus cosine
similarity), so the default fusion simply keeps the higher score per item.
That is a heuristic, not a calibrated fusion; it sits behind the
FusionStrategy protocol so it can be replaced without touching the ranker.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Protocol

from ..core.item import Item, ScoredCandidate
from .constants import DSA_TITLE_INDICATORS, TOP_N
from .keyword_scorer import has_coding_keyword, is_coding_query, is_dsa_query, score_lexical_candidates

logger = logging.getLogger(__name__)

ItemFilter = Callable[[Item], bool]


class FusionStrategy(Protocol):
    """Combines the per-path scores of one item into a single score."""

    def fuse(self, lexical_score: float | None, semantic_score: float | None) -> float: ...


class MaxScoreFusion:
    """Keep whichever path scored the item higher."""

    def fuse(self, lexical_score: float | None, semantic_score: float | None) -> float:
        scores = [s for s in (lexical_score, semantic_score) if s is not None]
        return max(scores) if scores else float("-inf")


def fuse_candidates(
    lexical: Sequence[ScoredCandidate],
    semantic: Sequence[ScoredCandidate],
    strategy: FusionStrategy | None = None,
) -> list[ScoredCandidate]:
    """Fuse two candidate lists into one entry per item id.

    Entries come out in first-insertion order (lexical first), and each
    keeps the Item it was first inserted with, so equal scores resolve to
    whichever path saw the item first.

    Args:
        lexical: Lexical-path candidates.
        semantic: Semantic-path candidates.
        strategy: Fusion strategy (default: max score).

    Returns:
        One fused candidate per unique item id.
    """
    strategy = strategy or MaxScoreFusion()

    # item_id → [lexical_score, semantic_score, item]
    merged: dict[str, list] = {}
    for candidate in lexical:
        entry = merged.setdefault(candidate.item_id, [None, None, candidate.item])
        if entry[0] is None or candidate.score > entry[0]:
            entry[0] = candidate.score
    for candidate in semantic:
        entry = merged.setdefault(candidate.item_id, [None, None, candidate.item])
        if entry[1] is None or candidate.score > entry[1]:
            entry[1] = candidate.score

    return [
        ScoredCandidate(
            item_id=item_id,
            score=strategy.fuse(lex_score, sem_score),
            item=item,
            source="fused",
        )
        for item_id, (lex_score, sem_score, item) in merged.items()
    ]


def sort_candidates(candidates: Iterable[ScoredCandidate]) -> list[ScoredCandidate]:
    """Sort by descending score with a deterministic tie-break on title, then id."""
    return sorted(
        candidates,
        key=lambda c: (-c.score, c.item.dedupe_key[0], c.item_id),
    )


def title_has_dsa_indicator(item: Item) -> bool:
    title = item.title.lower()
    return any(indicator in title for indicator in DSA_TITLE_INDICATORS)


def apply_intent_filter(candidates: list[ScoredCandidate], query: str) -> list[ScoredCandidate]:
    """Restrict candidates to the query's sub-topic, if it has one.

    DSA queries keep only items whose title carries a DSA indicator; other
    coding queries keep items with any coding keyword in title or author.
    DSA is checked first, so a query matching both uses the DSA filter.
    """
    if is_dsa_query(query):
        kept = [c for c in candidates if title_has_dsa_indicator(c.item)]
        logger.debug(f"DSA filter: {len(candidates)} → {len(kept)} candidates")
        return kept
    if is_coding_query(query):
        kept = [c for c in candidates if has_coding_keyword(c.item)]
        logger.debug(f"Coding filter: {len(candidates)} → {len(kept)} candidates")
        return kept
    return candidates


def dedupe_candidates(candidates: Iterable[ScoredCandidate]) -> list[ScoredCandidate]:
    """Keep the first candidate per normalized (title, author); drop empty titles."""
    seen: set[tuple[str, str]] = set()
    result: list[ScoredCandidate] = []
    for candidate in candidates:
        key = candidate.item.dedupe_key
        if not key[0] or key in seen:
            continue
        seen.add(key)
        result.append(candidate)
    return result


class HybridRanker:
    """Fuses lexical and semantic candidates into the final top-N list.

    Pipeline:
    1. Score lexical items (``1 + matches/10`` plus coding bonus)
    2. Fuse with semantic candidates per item id
    3. Sort descending (deterministic tie-break)
    4. Apply the DSA / coding intent filter
    5. Apply caller filters (e.g. page ceiling)
    6. Deduplicate by (title, author)
    7. Truncate to top_n
    """

    def __init__(self, strategy: FusionStrategy | None = None, top_n: int = TOP_N):
        self.strategy = strategy or MaxScoreFusion()
        self.top_n = top_n

    def rank_candidates(
        self,
        lexical_items: Sequence[Item],
        semantic_candidates: Sequence[ScoredCandidate],
        tokens: Iterable[str],
        raw_query: str,
        item_filters: Sequence[ItemFilter] = (),
    ) -> list[ScoredCandidate]:
        """Run the ranking pipeline and return scored candidates."""
        lexical_candidates = score_lexical_candidates(
            lexical_items, tokens, coding_query=is_coding_query(raw_query)
        )
        fused = sort_candidates(
            fuse_candidates(lexical_candidates, semantic_candidates, self.strategy)
        )
        filtered = apply_intent_filter(fused, raw_query)
        for item_filter in item_filters:
            filtered = [c for c in filtered if item_filter(c.item)]
        ranked = dedupe_candidates(filtered)[: self.top_n]

        logger.info(
            f"Ranked '{raw_query}': lexical={len(lexical_candidates)}, "
            f"semantic={len(semantic_candidates)}, fused={len(fused)}, final={len(ranked)}"
        )
        return ranked

    def rank(
        self,
        lexical_items: Sequence[Item],
        semantic_candidates: Sequence[ScoredCandidate],
        tokens: Iterable[str],
        raw_query: str,
        item_filters: Sequence[ItemFilter] = (),
    ) -> list[Item]:
        """Run the ranking pipeline and return the final items, best first."""
        return [
            c.item
            for c in self.rank_candidates(
                lexical_items, semantic_candidates, tokens, raw_query, item_filters
            )
        ]
