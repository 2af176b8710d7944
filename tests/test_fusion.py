"""Tests for score fusion, intent filtering, deduplication and ranking."""

import pytest

from libra.engine.core.item import ScoredCandidate
from libra.engine.scoring.fusion import (
    HybridRanker,
    MaxScoreFusion,
    apply_intent_filter,
    dedupe_candidates,
    fuse_candidates,
    sort_candidates,
)
from tests.conftest import make_item


def _candidate(item, score, source="lexical"):
    return ScoredCandidate(item_id=item.id, score=score, item=item, source=source)


class TestFuseCandidates:
    def test_keeps_maximum_score_per_item(self):
        a = make_item("a", "Alpha")
        b = make_item("b", "Beta")
        fused = fuse_candidates(
            [_candidate(a, 1.3)],
            [_candidate(a, 0.9, "semantic"), _candidate(b, 0.95, "semantic")],
        )

        scores = {c.item_id: c.score for c in fused}
        assert scores == {"a": pytest.approx(1.3), "b": pytest.approx(0.95)}

    def test_semantic_score_wins_when_higher(self):
        a = make_item("a", "Alpha")
        fused = fuse_candidates([_candidate(a, 1.0)], [_candidate(a, 1.0 + 1e-9, "semantic")])
        assert fused[0].score > 1.0

    def test_one_entry_per_id_in_insertion_order(self):
        a = make_item("a", "Alpha")
        b = make_item("b", "Beta")
        fused = fuse_candidates([_candidate(b, 1.1), _candidate(a, 1.2)], [_candidate(b, 0.5, "semantic")])
        assert [c.item_id for c in fused] == ["b", "a"]

    def test_custom_strategy(self):
        class SumFusion:
            def fuse(self, lexical_score, semantic_score):
                return (lexical_score or 0.0) + (semantic_score or 0.0)

        a = make_item("a", "Alpha")
        fused = fuse_candidates([_candidate(a, 1.0)], [_candidate(a, 0.5, "semantic")], SumFusion())
        assert fused[0].score == pytest.approx(1.5)

    def test_max_fusion_with_single_path(self):
        assert MaxScoreFusion().fuse(None, 0.4) == 0.4
        assert MaxScoreFusion().fuse(1.2, None) == 1.2


def test_sort_breaks_ties_by_title_then_id():
    items = [make_item("2", "Beta"), make_item("1", "Beta"), make_item("3", "Alpha")]
    ordered = sort_candidates([_candidate(i, 1.0) for i in items])
    assert [c.item_id for c in ordered] == ["3", "1", "2"]


class TestIntentFilter:
    def test_dsa_filter_takes_priority(self):
        dsa = make_item(1, "Grokking Algorithms")
        coding = make_item(2, "Python Crash Course")
        kept = apply_intent_filter([_candidate(dsa, 1.0), _candidate(coding, 1.0)], "dsa in python")
        assert [c.item_id for c in kept] == ["1"]

    def test_coding_filter(self):
        coding = make_item(1, "Clean Code", "Robert Martin")
        other = make_item(2, "The Hobbit", "Tolkien")
        kept = apply_intent_filter([_candidate(coding, 1.0), _candidate(other, 2.0)], "java programming")
        assert [c.item_id for c in kept] == ["1"]

    def test_no_filter_for_other_queries(self):
        items = [make_item(1, "The Hobbit"), make_item(2, "Calculus Made Easy")]
        candidates = [_candidate(i, 1.0) for i in items]
        assert apply_intent_filter(candidates, "fantasy adventure") == candidates


def test_dedupe_keeps_first_and_drops_empty_titles():
    first = make_item(1, "Clean Code", "Robert Martin")
    duplicate = make_item(2, "clean  code", "ROBERT MARTIN")
    untitled = make_item(3, "", "Anonymous")
    other_author = make_item(4, "Clean Code", "Someone Else")

    kept = dedupe_candidates([_candidate(i, 1.0) for i in (first, duplicate, untitled, other_author)])

    assert [c.item_id for c in kept] == ["1", "4"]


class TestHybridRanker:
    def test_top_n_and_non_increasing_scores(self):
        items = [make_item(i, f"History Volume {i}", "Author") for i in range(1, 9)]
        semantic = [_candidate(item, 0.1 * i, "semantic") for i, item in enumerate(items, start=1)]

        ranked = HybridRanker(top_n=5).rank_candidates([], semantic, {"history"}, "history volumes")

        assert len(ranked) == 5
        scores = [c.score for c in ranked]
        assert scores == sorted(scores, reverse=True)
        assert ranked[0].item_id == "8"

    def test_lexical_scores_use_expanded_tokens(self):
        match_two = make_item("a", "Calculus Made Easy", "Thompson")
        match_one = make_item("b", "Advanced Calculus", "Spivak")

        ranked = HybridRanker().rank([match_one, match_two], [], {"calculus", "easy"}, "easy calculus")

        assert [i.id for i in ranked] == ["a", "b"]

    def test_item_filters_apply_before_truncation(self):
        items = [make_item(i, f"Physics Part {i}", max_pages=100 * i) for i in range(1, 10)]

        ranked = HybridRanker(top_n=5).rank(
            items,
            [],
            {"physics"},
            "physics",
            item_filters=[lambda item: item.max_pages is not None and item.max_pages <= 300],
        )

        assert [i.id for i in ranked] == ["1", "2", "3"]

    def test_duplicates_do_not_shrink_results(self):
        items = [make_item(i, "Same Title", "Same Author") for i in range(1, 5)]
        items += [make_item(i, f"Other {i}", "X") for i in range(5, 10)]

        ranked = HybridRanker(top_n=5).rank(items, [], {"same", "title", "other"}, "same titles")

        assert len(ranked) == 5
        assert len({i.dedupe_key for i in ranked}) == 5
        assert ranked[0].id == "1"

    def test_deterministic_for_identical_inputs(self):
        items = [make_item(i, f"Book {i}") for i in range(1, 7)]
        semantic = [_candidate(items[2], 1.1, "semantic")]
        ranker = HybridRanker()

        first = ranker.rank(items, semantic, {"book"}, "book")
        second = ranker.rank(items, semantic, {"book"}, "book")

        assert [i.id for i in first] == [i.id for i in second]
