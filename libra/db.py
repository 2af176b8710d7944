"""Catalog store client for IBM Cloudant / CouchDB with connection retry.

The store owns the catalog. Libra reads every item (bulk fetch), runs
Lucene-style full-text queries against the `book_search` search index, and
writes back computed embeddings.
"""

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import httpx

from .config import settings
from .engine.core.item import Item
from .errors import CollaboratorUnavailable
from .services.iam import IAMTokenProvider

logger = logging.getLogger(__name__)

# Global store instance
_store: "CatalogStore | None" = None
_lock = asyncio.Lock()

# Reconnection settings
RETRY_DELAY_SECONDS = 1.0


class CatalogStore:
    """Async client for the Cloudant database holding the catalog."""

    def __init__(
        self,
        base_url: str,
        db_name: str,
        client: httpx.AsyncClient,
        token_provider: IAMTokenProvider | None = None,
        search_ddoc: str = "book_search",
        search_index: str = "books",
    ):
        self.base_url = base_url.rstrip("/")
        self.db_name = db_name
        self.search_ddoc = search_ddoc
        self.search_index = search_index
        self._client = client
        self._tokens = token_provider

    @property
    def db_url(self) -> str:
        return f"{self.base_url}/{quote(self.db_name, safe='')}"

    async def _request(self, operation: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = dict(kwargs.pop("headers", {}) or {})
        if self._tokens is not None:
            headers.update(await self._tokens.auth_headers())
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Store {operation} failed: {e}")
            raise CollaboratorUnavailable(operation) from e
        return response

    async def _json(self, operation: str, method: str, url: str, **kwargs: Any) -> Any:
        response = await self._request(operation, method, url, **kwargs)
        try:
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPStatusError, ValueError) as e:
            logger.error(f"Store {operation} failed with status {response.status_code}: {e}")
            raise CollaboratorUnavailable(operation) from e

    async def ping(self) -> dict[str, Any]:
        """Return database info (doc_count etc.); raises if unreachable."""
        return await self._json("ping", "GET", self.db_url)

    async def count_items(self) -> int:
        """Count catalog items without fetching them (design documents excluded)."""
        all_docs = await self._json("count_items", "GET", f"{self.db_url}/_all_docs", params={"limit": 0})
        design_docs = await self._json(
            "count_items", "GET", f"{self.db_url}/_design_docs", params={"limit": 0}
        )
        return max(int(all_docs.get("total_rows", 0)) - int(design_docs.get("total_rows", 0)), 0)

    async def bulk_fetch(self) -> list[Item]:
        """Fetch every catalog item with all fields. Design documents are skipped."""
        payload = await self._json(
            "bulk_fetch", "GET", f"{self.db_url}/_all_docs", params={"include_docs": "true"}
        )
        items: list[Item] = []
        for row in payload.get("rows", []):
            doc = row.get("doc")
            if not doc or str(doc.get("_id", "")).startswith("_design/"):
                continue
            items.append(Item.from_document(doc))
        logger.debug(f"Bulk fetch returned {len(items)} items")
        return items

    async def lexical_search(self, query: str, limit: int) -> list[str]:
        """Run a full-text query against the search index.

        Returns:
            Matching item ids in the index's relevance order, without duplicates.
        """
        url = (
            f"{self.db_url}/_design/{quote(self.search_ddoc, safe='')}"
            f"/_search/{quote(self.search_index, safe='')}"
        )
        payload = await self._json("lexical_search", "POST", url, json={"query": query, "limit": limit})
        ids: list[str] = []
        for row in payload.get("rows", []):
            doc_id = row.get("id")
            if doc_id and doc_id not in ids:
                ids.append(doc_id)
        return ids

    async def get_item(self, item_id: str) -> Item | None:
        """Fetch a single item; None if it no longer exists."""
        url = f"{self.db_url}/{quote(item_id, safe='')}"
        response = await self._request("get_item", "GET", url)
        if response.status_code == 404:
            return None
        try:
            response.raise_for_status()
            return Item.from_document(response.json())
        except (httpx.HTTPStatusError, ValueError) as e:
            logger.error(f"Store get_item failed for '{item_id}': {e}")
            raise CollaboratorUnavailable("get_item") from e

    async def get_items(self, item_ids: list[str]) -> list[Item]:
        """Resolve ids concurrently, preserving order and dropping missing items."""
        items = await asyncio.gather(*(self.get_item(item_id) for item_id in item_ids))
        return [item for item in items if item is not None]

    async def bulk_write(self, docs: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Write documents with `_bulk_docs`; returns per-document results."""
        return await self._json("bulk_write", "POST", f"{self.db_url}/_bulk_docs", json={"docs": docs})

    async def bulk_update(self, items: list[Item]) -> int:
        """Write items back (e.g. computed embeddings). Returns the success count."""
        if not items:
            return 0
        results = await self.bulk_write([item.to_document() for item in items])
        ok = sum(1 for r in results if r.get("ok"))
        if ok < len(items):
            logger.warning(f"Bulk update wrote {ok}/{len(items)} items (conflicts are retried on next backfill)")
        return ok

    async def close(self) -> None:
        await self._client.aclose()


def _build_store() -> CatalogStore:
    client = httpx.AsyncClient(timeout=settings.store_timeout_seconds)
    token_provider = None
    if settings.cloudant_api_key:
        token_provider = IAMTokenProvider(settings.cloudant_api_key, settings.iam_token_url, client)
    return CatalogStore(
        base_url=settings.cloudant_url,
        db_name=settings.cloudant_db,
        client=client,
        token_provider=token_provider,
        search_ddoc=settings.cloudant_search_ddoc,
        search_index=settings.cloudant_search_index,
    )


async def _create_store() -> CatalogStore:
    """Create a store client and verify the database is reachable, with retry."""
    max_retries = max(settings.store_connect_retries, 1)
    for attempt in range(max_retries):
        store = _build_store()
        try:
            info = await store.ping()
            logger.info(f"Catalog store connected: db={settings.cloudant_db}, docs={info.get('doc_count')}")
            return store
        except CollaboratorUnavailable as e:
            await store.close()
            if attempt < max_retries - 1:
                delay = RETRY_DELAY_SECONDS * (2**attempt)  # Exponential backoff
                logger.warning(
                    f"Store connection attempt {attempt + 1} failed: {e}. Retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
            else:
                logger.error(f"Failed to connect to catalog store after {max_retries} attempts: {e}")
                raise
    raise CollaboratorUnavailable("connect")


async def get_store() -> CatalogStore:
    """Get or create the shared CatalogStore instance."""
    global _store

    async with _lock:
        if _store is None:
            _store = await _create_store()
        return _store


async def close_store() -> None:
    """Close the store client."""
    global _store
    async with _lock:
        if _store is not None:
            try:
                await _store.close()
                logger.info("Catalog store connection closed")
            except Exception as e:
                logger.warning(f"Error closing catalog store: {e}")
            finally:
                _store = None
