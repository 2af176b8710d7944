"""Tests for intent routing and the end-to-end query scenarios."""

import pytest

from libra.engine import LibraryEngine
from libra.engine.core.vocabulary import CatalogIndexHolder
from libra.engine.router import IntentRouter, RouteRule, match_catalog_count
from libra.engine.scoring.constants import CASUAL_REPLY
from libra.errors import InputError, RetrievalFailure
from libra.models import AggregateKind, IntentKind
from tests.conftest import FakeEmbeddings, FakeRenderer, FakeStore, make_item


class TestClassify:
    @pytest.mark.parametrize(
        ("query", "intent"),
        [
            ("how many copies of Learning Python", IntentKind.COPIES_OF),
            ("is compiler design available", IntentKind.AVAILABILITY_OF),
            ("availability of calculus books", IntentKind.AVAILABILITY_OF),
            ("how many total books", IntentKind.AGGREGATE),
            ("total copies", IntentKind.AGGREGATE),
            ("how many python books do you have", IntentKind.AGGREGATE),
            ("hi", IntentKind.CASUAL),
            ("good morning!", IntentKind.CASUAL),
            ("DSA books", IntentKind.RETRIEVAL),
            ("recommend a book on rome", IntentKind.RETRIEVAL),
        ],
    )
    def test_first_matching_rule_wins(self, query, intent):
        rule, _ = IntentRouter().classify(query)
        assert rule.intent == intent

    def test_copies_rule_outranks_count_rule(self):
        rule, params = IntentRouter().classify("how many copies for clean code")
        assert rule.intent == IntentKind.COPIES_OF
        assert params["subject"] == "clean code"

    @pytest.mark.parametrize(
        "query",
        ["how many copies do you have of clean code", "how many copies are there for clean code"],
    )
    def test_copies_of_subject_after_filler(self, query):
        rule, params = IntentRouter().classify(query)
        assert rule.intent == IntentKind.COPIES_OF
        assert params["subject"] == "clean code"

    @pytest.mark.parametrize(
        ("query", "kind", "topic"),
        [
            ("how many total books", AggregateKind.TOTAL_BOOKS, None),
            ("how many books are in the library", AggregateKind.TOTAL_BOOKS, None),
            ("how many books are available", AggregateKind.AVAILABLE_BOOKS, None),
            ("how many copies are there", AggregateKind.TOTAL_COPIES, None),
            ("how many python books", AggregateKind.TOPIC_COUNT, "python"),
            ("how many books on data structures", AggregateKind.TOPIC_COUNT, "data structures"),
            ("how many books do you have on python", AggregateKind.TOPIC_COUNT, "python"),
            ("how many books by tolkien are available", AggregateKind.TOPIC_COUNT, "tolkien"),
            ("how many titles are there about calculus?", AggregateKind.TOPIC_COUNT, "calculus"),
            ("how many books do you have in total", AggregateKind.TOTAL_BOOKS, None),
            ("how many books are available for borrowing", AggregateKind.AVAILABLE_BOOKS, None),
        ],
    )
    def test_count_kinds(self, query, kind, topic):
        params = match_catalog_count(query)
        assert params["kind"] == kind
        assert params.get("topic") == topic

    def test_custom_rules_without_fallback(self):
        router = IntentRouter(rules=[RouteRule(IntentKind.CASUAL, lambda q: None, None)])
        with pytest.raises(LookupError):
            router.classify("anything")


class TestScenarios:
    @pytest.mark.asyncio
    async def test_dsa_books(self, engine_factory, store):
        response = await engine_factory().ask("DSA books")

        assert response.intent == IntentKind.RETRIEVAL
        # Both copies of "Introduction to Algorithms" collapse to one entry
        assert [b.id for b in response.books] == ["2", "1"]
        assert response.results_found == 2
        assert store.calls["lexical_search"] == 1
        assert "title:dsa" in store.search_queries[0]

    @pytest.mark.asyncio
    async def test_dsa_books_expands_to_data_structures_and_algorithms(self):
        items = [
            make_item("p1", "Basic Physics", "Jane Doe", 2, True),
            make_item("a1", "Introduction to Algorithms", "Thomas Cormen", 3, True),
        ]
        store = FakeStore(items)
        holder = CatalogIndexHolder()
        holder.replace(items)

        response = await LibraryEngine(store, holder).ask("DSA books")

        query = store.search_queries[0]
        for clause in ("title:data", "title:structures", "title:algorithms"):
            assert clause in query
        titles = [b.title for b in response.books]
        assert titles[0] == "Introduction to Algorithms"
        if "Basic Physics" in titles:
            assert titles.index("Introduction to Algorithms") < titles.index("Basic Physics")

    @pytest.mark.asyncio
    async def test_how_many_total_books(self):
        items = [make_item(i, f"Book number {i}") for i in range(37)]
        store = FakeStore(items)
        holder = CatalogIndexHolder()
        holder.replace(items)

        response = await LibraryEngine(store, holder).ask("how many total books")

        assert response.intent == IntentKind.AGGREGATE
        assert "37" in response.reply
        assert response.results_found == 37
        assert store.calls["lexical_search"] == 0
        assert store.calls["bulk_fetch"] == 1

    @pytest.mark.asyncio
    async def test_unavailable_subject_with_zero_matches(self, engine_factory):
        response = await engine_factory().ask("is compiler design available")

        assert response.intent == IntentKind.AVAILABILITY_OF
        assert response.results_found == 0
        assert "No matching books found" in response.reply
        assert response.books == []

    @pytest.mark.asyncio
    async def test_embedding_failure_falls_back_to_lexical(self, engine_factory):
        embedder = FakeEmbeddings(fail=True)

        response = await engine_factory(embedder=embedder).ask("python books")

        assert response.intent == IntentKind.RETRIEVAL
        assert [b.id for b in response.books] == ["2", "4", "3"]
        assert len(embedder.calls) == 1

    @pytest.mark.asyncio
    async def test_casual_query_makes_no_collaborator_calls(self, engine_factory, store):
        embedder = FakeEmbeddings(default=[1.0, 0.0])
        renderer = FakeRenderer()

        response = await engine_factory(embedder=embedder, renderer=renderer).ask("hi")

        assert response.intent == IntentKind.CASUAL
        assert response.reply == CASUAL_REPLY
        assert response.results_found == 0
        assert store.total_calls == 0
        assert embedder.calls == []
        assert renderer.calls == []


class TestRetrieval:
    @pytest.mark.asyncio
    async def test_page_ceiling_filters_items(self, engine_factory):
        response = await engine_factory().ask("python books under 600 pages")
        assert [b.id for b in response.books] == ["2", "3"]

    @pytest.mark.asyncio
    async def test_semantic_candidates_join_the_ranking(self, catalog, engine_factory):
        for item in catalog:
            item.embedding = [0.0, 1.0]
            item.embedding_model = "fake-model"
        catalog[6].embedding = [1.0, 0.0]  # The Hobbit
        embedder = FakeEmbeddings({"books about a dragon hoard": [1.0, 0.0]})

        response = await engine_factory(embedder=embedder).ask("books about a dragon hoard")

        assert response.books[0].title == "The Hobbit"
        assert len(response.books) <= 5

    @pytest.mark.asyncio
    async def test_stop_word_only_query_skips_the_store(self, engine_factory, store):
        response = await engine_factory().ask("do you have any books")

        assert response.results_found == 0
        assert store.total_calls == 0

    @pytest.mark.asyncio
    async def test_lexical_failure_is_a_retrieval_failure(self, catalog, index_holder):

        store = FakeStore(catalog, fail_on={"lexical_search"})
        with pytest.raises(RetrievalFailure) as exc_info:
            await LibraryEngine(store, index_holder).ask("python books")
        assert exc_info.value.operation == "lexical_search"

    @pytest.mark.asyncio
    async def test_bulk_fetch_failure_is_a_retrieval_failure(self, catalog, index_holder):

        store = FakeStore(catalog, fail_on={"bulk_fetch"})
        with pytest.raises(RetrievalFailure):
            await LibraryEngine(store, index_holder).ask("how many total books")

    @pytest.mark.asyncio
    async def test_renderer_output_is_the_reply(self, engine_factory):
        renderer = FakeRenderer()
        response = await engine_factory(renderer=renderer).ask("calculus books")

        assert response.reply == "Rendered: Calculus Made Easy"
        assert renderer.calls[0][1] == "calculus books"

    @pytest.mark.asyncio
    async def test_renderer_failure_uses_plain_listing(self, engine_factory):
        response = await engine_factory(renderer=FakeRenderer(fail=True)).ask("calculus books")

        assert "Title: Calculus Made Easy" in response.reply
        assert "Location: MA-110" in response.reply


class TestAggregates:
    @pytest.mark.asyncio
    async def test_copies_of_subject(self, engine_factory):
        response = await engine_factory().ask("how many copies of python books")

        assert response.intent == IntentKind.COPIES_OF
        assert response.results_found == 3
        assert "7 copies" in response.reply

    @pytest.mark.asyncio
    async def test_availability_of_subject(self, engine_factory):
        response = await engine_factory().ask("is python available")

        assert response.results_found == 3
        assert "2 available (6 copies)" in response.reply
        assert "7 copies in total" in response.reply

    @pytest.mark.asyncio
    async def test_available_books_count(self, engine_factory):
        response = await engine_factory().ask("how many books are available")
        assert response.reply.startswith("7 of 10 books")
        assert response.results_found == 7

    @pytest.mark.asyncio
    async def test_total_copies(self, engine_factory):
        response = await engine_factory().ask("total copies")
        assert "22 copies" in response.reply
        assert response.results_found == 22

    @pytest.mark.asyncio
    async def test_topic_count_uses_expanded_aliases(self, engine_factory, store):
        response = await engine_factory().ask("how many python books")

        assert response.results_found == 3
        assert sorted(b.id for b in response.books) == ["2", "3", "4"]
        assert store.calls["lexical_search"] == 0

    @pytest.mark.asyncio
    async def test_topic_count_after_filler_words(self, engine_factory):
        response = await engine_factory().ask("how many books by tolkien are available")

        assert response.intent == IntentKind.AGGREGATE
        assert response.results_found == 1
        assert [b.id for b in response.books] == ["7"]
        assert '"tolkien"' in response.reply
        assert "1 currently available" in response.reply

    @pytest.mark.asyncio
    async def test_copies_of_title_after_filler_words(self, engine_factory):
        response = await engine_factory().ask("how many copies do you have of clean code")

        assert response.intent == IntentKind.COPIES_OF
        assert "9" in [b.id for b in response.books]
        assert '"clean code"' in response.reply


class TestInputValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", None, 42])
    async def test_invalid_query_rejected_before_any_call(self, engine_factory, store, query):
        with pytest.raises(InputError):
            await engine_factory().ask(query)
        assert store.total_calls == 0
