"""FastAPI server for the Libra catalog assistant."""

import json
import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Annotated

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.deps import LibraState, get_engine, get_state, sanitize_error_message
from .config import settings
from .db import close_store, get_store
from .engine import LibraryEngine
from .engine.core.vocabulary import CatalogIndexHolder
from .errors import CollaboratorUnavailable, InputError, RetrievalFailure
from .middleware import RequestContextMiddleware
from .models import (
    AskRequest,
    AskResponse,
    BackfillResponse,
    ErrorResponse,
    HealthResponse,
    ImportBooksRequest,
    ImportBooksResponse,
    ReadyResponse,
    RebuildIndexResponse,
    StoreProbeResponse,
)
from .services.iam import IAMTokenProvider
from .services.indexer import EmbeddingIndexer
from .services.renderer import WatsonxRenderer

logger = logging.getLogger(__name__)

# ============ SENTRY INITIALIZATION ============


def _filter_sentry_event(event: dict) -> dict:
    """Remove sensitive data from Sentry events."""
    if "request" in event and "headers" in event["request"]:
        headers = event["request"]["headers"]
        for key in ["authorization", "cookie"]:
            if key in headers:
                headers[key] = "[REDACTED]"
    return event


def _init_sentry() -> None:
    if not settings.sentry_dsn:
        logger.debug("Sentry DSN not configured - error tracking disabled")
        return
    try:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.starlette import StarletteIntegration
    except ImportError:
        logger.warning("Sentry DSN configured but sentry-sdk not installed")
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1 if settings.environment == "production" else 1.0,
        integrations=[
            FastApiIntegration(),
            StarletteIntegration(),
        ],
        before_send=lambda event, hint: _filter_sentry_event(event),
    )
    logger.info("Sentry error tracking initialized")


def _build_renderer() -> WatsonxRenderer | None:
    if not (settings.ibm_api_key and settings.project_id):
        logger.warning("IBM_API_KEY / PROJECT_ID not set - replies use the plain inventory listing")
        return None
    client = httpx.AsyncClient(timeout=settings.renderer_timeout_seconds)
    return WatsonxRenderer(
        ibm_url=settings.ibm_url,
        project_id=settings.project_id,
        token_provider=IAMTokenProvider(settings.ibm_api_key, settings.iam_token_url, client),
        client=client,
        model_id=settings.renderer_model_id,
        max_new_tokens=settings.renderer_max_new_tokens,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _init_sentry()
    logger.info(f"Starting Libra server v{__version__}")

    if not settings.debug and settings.cors_allowed_origins == "*":
        logger.warning(
            "SECURITY WARNING: CORS is configured to allow all origins ('*'). "
            "Set CORS_ALLOWED_ORIGINS to specific domains in production."
        )

    store = await get_store()

    index_holder = CatalogIndexHolder(
        min_count=settings.synonym_min_count,
        max_synonyms=settings.synonym_cap,
    )
    try:
        await index_holder.rebuild(store)
    except CollaboratorUnavailable as e:
        logger.warning(f"Catalog index build failed, starting with an empty index: {e}")

    from .services.embeddings import EmbeddingsService

    embedder = EmbeddingsService.get_instance()
    try:
        embedder.load()
    except Exception as e:
        logger.warning(f"Embedding model preload failed (will retry on first use): {e}")

    renderer = _build_renderer()
    engine = LibraryEngine(
        store=store,
        index_holder=index_holder,
        embedder=embedder,
        renderer=renderer,
        top_n=settings.top_n,
        semantic_top_k=settings.semantic_top_k,
        lexical_limit=settings.lexical_limit,
    )
    state = LibraState(
        store=store,
        index_holder=index_holder,
        engine=engine,
        embedder=embedder,
        indexer=EmbeddingIndexer(store, embedder, batch_size=settings.embed_batch_size),
    )
    app.state.libra = state

    if settings.embed_backfill_on_startup:
        state.schedule_backfill()

    yield
    # Shutdown
    for task in list(state.background_tasks):
        task.cancel()
    if renderer is not None:
        await renderer.close()
    await close_store()


app = FastAPI(
    title="Libra",
    description="Library catalog assistant - hybrid keyword and semantic book search",
    version=__version__,
    lifespan=lifespan,
)

# Request id, access log and security headers
app.add_middleware(RequestContextMiddleware)

# CORS middleware - use configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.cors_origins_list != ["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# ============ EXCEPTION HANDLERS ============


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "-")


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent response format."""
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(InputError)
async def input_error_handler(request: Request, exc: InputError):
    return _error_response(400, sanitize_error_message(exc))


@app.exception_handler(RetrievalFailure)
async def retrieval_failure_handler(request: Request, exc: RetrievalFailure):
    """Could not search the catalog; distinct from an empty result."""
    return _error_response(503, "The library catalog is temporarily unavailable. Please try again.")


@app.exception_handler(CollaboratorUnavailable)
async def collaborator_error_handler(request: Request, exc: CollaboratorUnavailable):
    logger.error(
        f"Collaborator unavailable during {exc.operation}: {exc} "
        f"[request_id={_request_id(request)}]"
    )
    return _error_response(503, "A backing service is temporarily unavailable. Please try again.")


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with sanitized error messages."""
    logger.error(f"Unhandled exception: {exc} [request_id={_request_id(request)}]", exc_info=True)
    return _error_response(500, "An internal server error occurred. Please try again.")


# ============ HEALTH ENDPOINTS ============


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint (lightweight liveness check)."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now(UTC),
    )


@app.get("/ready", tags=["Health"])
async def readiness_check(state: Annotated[LibraState, Depends(get_state)]):
    """Readiness check - store reachable, embedding model loaded, index current."""
    checks: dict[str, bool] = {}

    try:
        item_count = await state.store.count_items()
        checks["store"] = True
    except CollaboratorUnavailable:
        item_count = None
        checks["store"] = False

    is_loaded = getattr(state.embedder, "is_loaded", None)
    checks["embedding_model"] = bool(is_loaded()) if callable(is_loaded) else state.embedder is not None
    checks["catalog_index"] = not state.index_holder.current.is_empty
    if item_count is not None and state.index_holder.is_stale(item_count):
        logger.warning(
            f"Catalog index is stale: indexed {state.index_holder.current.item_count}, "
            f"store has {item_count}; POST /index/rebuild to refresh"
        )

    all_ok = all(checks.values())
    response = ReadyResponse(status="ready" if all_ok else "not_ready", version=__version__, checks=checks)
    return JSONResponse(status_code=200 if all_ok else 503, content=response.model_dump())


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint with service info."""
    return {
        "name": "Libra",
        "version": __version__,
        "docs": "/docs",
        "ask": "/ask-ai",
    }


@app.get("/test-db", response_model=StoreProbeResponse, tags=["Health"])
async def test_db(state: Annotated[LibraState, Depends(get_state)]) -> StoreProbeResponse:
    """Store connectivity probe."""
    count = await state.store.count_items()
    return StoreProbeResponse(database=settings.cloudant_db, count=count)


# ============ QUERY ENDPOINT ============


@app.post(
    "/ask-ai",
    response_model=AskResponse,
    response_model_by_alias=True,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    tags=["Search"],
)
async def ask_ai(
    request: AskRequest,
    engine: Annotated[LibraryEngine, Depends(get_engine)],
) -> AskResponse:
    """Answer a natural-language question about the catalog."""
    return await engine.ask(request.query)


# ============ CATALOG MAINTENANCE ============


def _load_books_file() -> list[dict]:
    path = settings.books_json_path
    try:
        with open(path, encoding="utf-8") as f:
            books = json.load(f)
    except FileNotFoundError as e:
        raise InputError(f"Books file not found: {path.name}") from e
    except json.JSONDecodeError as e:
        raise InputError(f"Invalid books file: {path.name}") from e
    if not isinstance(books, list):
        raise InputError(f"Invalid books file: {path.name} must contain a JSON array")
    return books


@app.post("/import-books", response_model=ImportBooksResponse, tags=["Catalog"])
async def import_books(
    state: Annotated[LibraState, Depends(get_state)],
    request: ImportBooksRequest | None = None,
) -> ImportBooksResponse:
    """Bulk-insert book documents, then refresh the index and embeddings."""
    books = request.books if request is not None and request.books is not None else _load_books_file()
    if not books:
        return ImportBooksResponse(inserted=0, failed=0, total=0)

    results = await state.store.bulk_write(books)
    inserted = sum(1 for r in results if r.get("ok"))
    failed = sum(1 for r in results if r.get("error"))
    logger.info(f"Imported books: inserted={inserted}, failed={failed}, total={len(books)}")

    if inserted:
        await state.index_holder.rebuild(state.store)
        state.schedule_backfill()

    return ImportBooksResponse(inserted=inserted, failed=failed, total=len(books))


@app.post("/index/rebuild", response_model=RebuildIndexResponse, tags=["Catalog"])
async def rebuild_index(state: Annotated[LibraState, Depends(get_state)]) -> RebuildIndexResponse:
    """Rebuild the title vocabulary and auto-derived synonyms from a full scan."""
    index = await state.index_holder.rebuild(state.store)
    return RebuildIndexResponse(
        indexed=index.item_count,
        vocabulary_size=len(index.title_vocabulary),
        synonym_entries=len(index.auto_synonyms),
    )


@app.post("/embeddings/backfill", response_model=BackfillResponse, tags=["Catalog"])
async def backfill_embeddings(state: Annotated[LibraState, Depends(get_state)]) -> BackfillResponse:
    """Embed items whose vector is missing, stale or from another model."""
    if state.indexer is None:
        raise HTTPException(status_code=503, detail="Embedding provider is not configured")
    result = await state.indexer.backfill()
    return BackfillResponse(
        scanned=result.scanned,
        stale=result.stale,
        embedded=result.embedded,
        written=result.written,
    )


# ============ MAIN ============


def main():
    """Run the server with uvicorn."""
    import uvicorn

    uvicorn.run(
        "libra.server:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
