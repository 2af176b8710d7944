"""Request context middleware.

Tags every HTTP request with a request id, writes one access log line per
request and adds the response headers the Libra API always sends.
Implemented as pure ASGI so it wraps plain and streamed responses alike.
"""

import logging
import re
import time
from uuid import uuid4

from ..config import settings

logger = logging.getLogger(__name__)

# Accept caller-supplied ids only if they are short and printable
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")

# Answers reflect live inventory and must not be cached by browsers or proxies
NO_STORE_PREFIXES = ("/ask-ai", "/import-books", "/index/", "/embeddings/", "/test-db", "/ready")


def resolve_request_id(headers: list[tuple[bytes, bytes]], header_name: str) -> str:
    """Reuse the upstream request id when present and well formed, else mint one."""
    wanted = header_name.lower().encode("latin-1")
    for name, value in headers:
        if name.lower() == wanted:
            candidate = value.decode("latin-1").strip()
            if _REQUEST_ID_RE.match(candidate):
                return candidate
            break
    return uuid4().hex


def response_headers(path: str, request_id: str) -> list[tuple[bytes, bytes]]:
    headers = [
        (settings.request_id_header.lower().encode("latin-1"), request_id.encode("latin-1")),
        (b"x-content-type-options", b"nosniff"),
        (b"x-frame-options", b"DENY"),
        (b"referrer-policy", b"no-referrer"),
    ]
    if path.startswith(NO_STORE_PREFIXES):
        headers.append((b"cache-control", b"no-store"))
    if settings.hsts_enabled:
        headers.append(
            (
                b"strict-transport-security",
                f"max-age={settings.hsts_max_age_seconds}; includeSubDomains".encode("latin-1"),
            )
        )
    return headers


class RequestContextMiddleware:
    """
    Request id, access logging and standard response headers.

    The request id is stored in ``scope["state"]`` so route and exception
    handlers can read it as ``request.state.request_id``.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = resolve_request_id(scope.get("headers", []), settings.request_id_header)
        scope.setdefault("state", {})["request_id"] = request_id
        path = scope.get("path", "")
        started = time.perf_counter()
        status_code = 500

        async def send_with_context(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = list(message.get("headers", []))
                headers.extend(response_headers(path, request_id))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_with_context)
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(
                f"{scope.get('method', '-')} {path} -> {status_code} "
                f"in {elapsed_ms:.1f}ms [request_id={request_id}]"
            )
