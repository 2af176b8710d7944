"""ASGI middleware for the Libra API."""

from .request_context import RequestContextMiddleware

__all__ = [
    "RequestContextMiddleware",
]
