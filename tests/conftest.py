"""Shared pytest fixtures: in-memory store, embedding provider and renderer fakes."""

import re
from collections import Counter

import pytest

from libra.engine import LibraryEngine
from libra.engine.core.item import Item
from libra.engine.core.vocabulary import CatalogIndexHolder
from libra.errors import CollaboratorUnavailable

_CLAUSE_RE = re.compile(r"(title|author):([a-z0-9]+)(\*?)")
_WORD_SPLIT = re.compile(r"[^a-z0-9]+")


def make_item(item_id, title, author="", copies=1, available=True, location="", max_pages=None, **kwargs):
    return Item(
        id=str(item_id),
        title=title,
        author=author,
        copies=copies,
        available=available,
        location=location,
        max_pages=max_pages,
        **kwargs,
    )


class FakeStore:
    """In-memory catalog store.

    `lexical_search` evaluates the ``field:term`` / ``field:term*`` clauses
    against whole words of the title and author, like the search index does.
    Operations listed in `fail_on` raise CollaboratorUnavailable.
    """

    def __init__(self, items=(), fail_on=()):
        self.items = list(items)
        self.fail_on = set(fail_on)
        self.calls = Counter()
        self.search_queries: list[str] = []
        self.written: list[dict] = []
        self.updated: list[Item] = []

    def _enter(self, operation):
        self.calls[operation] += 1
        if operation in self.fail_on:
            raise CollaboratorUnavailable(operation)

    async def bulk_fetch(self):
        self._enter("bulk_fetch")
        return list(self.items)

    async def count_items(self):
        self._enter("count_items")
        return len(self.items)

    async def lexical_search(self, query, limit):
        self._enter("lexical_search")
        self.search_queries.append(query)
        clauses = _CLAUSE_RE.findall(query)
        ids = []
        for item in self.items:
            words = {
                "title": [w for w in _WORD_SPLIT.split(item.title.lower()) if w],
                "author": [w for w in _WORD_SPLIT.split(item.author.lower()) if w],
            }
            for field_name, term, wildcard in clauses:
                if any(w == term or (wildcard and w.startswith(term)) for w in words[field_name]):
                    ids.append(item.id)
                    break
        return ids[:limit]

    async def get_items(self, item_ids):
        self._enter("get_items")
        by_id = {item.id: item for item in self.items}
        return [by_id[i] for i in item_ids if i in by_id]

    async def bulk_write(self, docs):
        self._enter("bulk_write")
        results = []
        for index, doc in enumerate(docs):
            if not doc.get("title"):
                results.append({"error": "forbidden", "reason": "title is required"})
                continue
            item_id = str(doc.get("_id") or f"new-{len(self.items) + index}")
            self.items.append(Item.from_document({**doc, "_id": item_id}))
            self.written.append(doc)
            results.append({"ok": True, "id": item_id, "rev": "1-abc"})
        return results

    async def bulk_update(self, items):
        self._enter("bulk_update")
        self.updated.extend(items)
        return len(items)

    @property
    def total_calls(self):
        return sum(self.calls.values())


class FakeEmbeddings:
    """Embedding provider returning fixed vectors per text."""

    def __init__(self, vectors=None, default=None, fail=False, model_name="fake-model"):
        self.vectors = dict(vectors or {})
        self.default = default
        self.fail = fail
        self._model_name = model_name
        self.calls: list[list[str]] = []

    @property
    def model_name(self):
        return self._model_name

    def is_loaded(self):
        return True

    async def embed(self, texts):
        self.calls.append(list(texts))
        if self.fail:
            raise RuntimeError("embedding backend down")
        return [self.vectors.get(text, self.default) for text in texts]


class FakeRenderer:
    """Renderer that lists titles, or raises when `fail` is set."""

    def __init__(self, fail=False):
        self.fail = fail
        self.calls: list[tuple[list[Item], str]] = []

    async def format(self, items, query):
        self.calls.append((list(items), query))
        if self.fail:
            raise CollaboratorUnavailable("render")
        return "Rendered: " + "; ".join(item.title for item in items)


@pytest.fixture
def catalog():
    return [
        make_item(1, "Introduction to Algorithms", "Thomas Cormen", 3, True, "CS-101", 1312),
        make_item(2, "Data Structures and Algorithms in Python", "Michael Goodrich", 2, True, "CS-102", 600),
        make_item(3, "Python Crash Course", "Eric Matthes", 4, True, "CS-201", 544),
        make_item(4, "Learning Python", "Mark Lutz", 1, False, "CS-202", 1600),
        make_item(5, "Calculus Made Easy", "Silvanus Thompson", 2, True, "MA-110", 330),
        make_item(6, "A Brief History of Time", "Stephen Hawking", 1, True, "PH-300", 212),
        make_item(7, "The Hobbit", "J. R. R. Tolkien", 5, True, "FI-010"),
        make_item(8, "Introduction to Algorithms", "Thomas Cormen", 1, False, "CS-101", 1312),
        make_item(9, "Clean Code", "Robert Martin", 2, False, "CS-301", 464),
        make_item(10, "Physics for Scientists and Engineers", "Raymond Serway", 1, True, "PH-120", 1000),
    ]


@pytest.fixture
def store(catalog):
    return FakeStore(catalog)


@pytest.fixture
def index_holder(catalog):
    holder = CatalogIndexHolder()
    holder.replace(catalog)
    return holder


@pytest.fixture
def engine_factory(store, index_holder):
    def _build(embedder=None, renderer=None, **kwargs):
        return LibraryEngine(
            store=kwargs.pop("store", store),
            index_holder=kwargs.pop("index_holder", index_holder),
            embedder=embedder,
            renderer=renderer,
            **kwargs,
        )

    return _build
