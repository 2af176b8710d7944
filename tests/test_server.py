"""Tests for the HTTP surface using TestClient with in-memory collaborators."""

import pytest
from fastapi.testclient import TestClient

from libra.api.deps import LibraState, get_state
from libra.config import settings
from libra.engine import LibraryEngine
from libra.server import app
from libra.services.indexer import EmbeddingIndexer
from tests.conftest import FakeEmbeddings, FakeStore


@pytest.fixture
def state(store, index_holder):
    return LibraState(
        store=store,
        index_holder=index_holder,
        engine=LibraryEngine(store, index_holder),
    )


@pytest.fixture
def client(state):
    app.dependency_overrides[get_state] = lambda: state
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"
        assert response.headers["referrer-policy"] == "no-referrer"
        assert len(response.headers["x-request-id"]) == 32
        assert "cache-control" not in response.headers
        assert "strict-transport-security" not in response.headers

    def test_root(self, client):
        assert client.get("/").json()["name"] == "Libra"

    def test_ready_without_embedder_is_not_ready(self, client):
        response = client.get("/ready")

        assert response.status_code == 503
        checks = response.json()["checks"]
        assert checks == {"store": True, "embedding_model": False, "catalog_index": True}

    def test_ready(self, client, state):
        state.embedder = FakeEmbeddings()
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_test_db_reports_count(self, client):
        response = client.get("/test-db")
        assert response.json() == {"ok": True, "database": "books", "count": 10}

    def test_no_state_before_startup(self):
        response = TestClient(app).get("/test-db")
        assert response.status_code == 503
        assert response.json()["ok"] is False


class TestRequestContext:
    def test_upstream_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "lb-7f3a.42"})
        assert response.headers["x-request-id"] == "lb-7f3a.42"

    def test_malformed_request_id_is_replaced(self, client):
        response = client.get("/health", headers={"X-Request-ID": "bad id with spaces"})
        assert response.headers["x-request-id"] != "bad id with spaces"
        assert len(response.headers["x-request-id"]) == 32

    def test_catalog_answers_are_not_cached(self, client):
        response = client.post("/ask-ai", json={"query": "how many total books"})
        assert response.headers["cache-control"] == "no-store"

    def test_access_log_carries_request_id(self, client, caplog):
        with caplog.at_level("INFO", logger="libra.middleware.request_context"):
            client.get("/health", headers={"X-Request-ID": "trace-1"})
        messages = [r.message for r in caplog.records]
        assert any("GET /health -> 200" in m and "request_id=trace-1" in m for m in messages)

    def test_hsts_only_in_production(self, client, monkeypatch):
        monkeypatch.setattr(settings, "environment", "production")
        monkeypatch.setattr(settings, "debug", False)
        response = client.get("/health")
        assert response.headers["strict-transport-security"] == "max-age=31536000; includeSubDomains"

class TestAskAI:
    def test_retrieval_response_shape(self, client):
        response = client.post("/ask-ai", json={"query": "DSA books"})

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["intent"] == "retrieval"
        assert data["resultsFound"] == 2
        assert [b["id"] for b in data["books"]] == ["2", "1"]
        assert "embedding" not in data["books"][0]

    def test_casual(self, client, store):
        data = client.post("/ask-ai", json={"query": "hi"}).json()

        assert data["intent"] == "casual"
        assert data["resultsFound"] == 0
        assert store.total_calls == 0

    def test_aggregate_reply(self, client):
        data = client.post("/ask-ai", json={"query": "how many total books"}).json()
        assert data["resultsFound"] == 10
        assert "10 books" in data["reply"]

    def test_error_body_is_documented(self, client):
        openapi = client.get("/openapi.json").json()
        responses = openapi["paths"]["/ask-ai"]["post"]["responses"]
        for status in ("400", "503"):
            ref = responses[status]["content"]["application/json"]["schema"]["$ref"]
            assert ref.endswith("/ErrorResponse")

    @pytest.mark.parametrize("body", [{"query": ""}, {"query": "   "}, {}])
    def test_empty_query_is_400(self, client, body):
        response = client.post("/ask-ai", json=body)

        assert response.status_code == 400
        assert response.json() == {"ok": False, "error": "Query is required"}

    def test_store_failure_is_503_with_generic_message(self, catalog, index_holder):
        store = FakeStore(catalog, fail_on={"lexical_search"})
        state = LibraState(store=store, index_holder=index_holder, engine=LibraryEngine(store, index_holder))
        app.dependency_overrides[get_state] = lambda: state
        try:
            response = TestClient(app, raise_server_exceptions=False).post(
                "/ask-ai", json={"query": "python books"}
            )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 503
        body = response.json()
        assert body["ok"] is False
        assert "lexical_search" not in body["error"]


class TestCatalogMaintenance:
    def test_import_books_from_body_rebuilds_index(self, client, state):
        books = [
            {"title": "Compiler Design", "author": "Aho", "copies": 2, "available": True},
            {"author": "No Title"},
        ]

        response = client.post("/import-books", json={"books": books})

        assert response.json() == {"ok": True, "inserted": 1, "failed": 1, "total": 2}
        assert "compiler" in state.index_holder.current.title_vocabulary

    def test_import_books_missing_file_is_400(self, client, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "books_json_path", tmp_path / "missing.json")
        response = client.post("/import-books")

        assert response.status_code == 400
        assert "Books file not found" in response.json()["error"]

    def test_import_books_from_file(self, client, tmp_path, monkeypatch):
        path = tmp_path / "books.json"
        path.write_text('[{"title": "Dune", "author": "Frank Herbert", "copies": 3}]', encoding="utf-8")
        monkeypatch.setattr(settings, "books_json_path", path)

        assert client.post("/import-books").json()["inserted"] == 1

    def test_rebuild_index(self, client):
        data = client.post("/index/rebuild").json()
        assert data["status"] == "ok"
        assert data["indexed"] == 10
        assert data["vocabulary_size"] > 0

    def test_backfill_without_embedder_is_503(self, client):
        response = client.post("/embeddings/backfill")
        assert response.status_code == 503
        assert response.json()["ok"] is False

    def test_backfill(self, client, state, store):
        embedder = FakeEmbeddings(default=[1.0, 0.0])
        state.embedder = embedder
        state.indexer = EmbeddingIndexer(store, embedder)

        data = client.post("/embeddings/backfill").json()

        assert data["scanned"] == 10
        assert data["written"] == 10
