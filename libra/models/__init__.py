"""Pydantic models for the Libra API request/response schemas."""

from .enums import AggregateKind, IntentKind
from .requests import AskRequest, ImportBooksRequest
from .responses import (
    AskResponse,
    BackfillResponse,
    BookInfo,
    ErrorResponse,
    HealthResponse,
    ImportBooksResponse,
    ReadyResponse,
    RebuildIndexResponse,
    StoreProbeResponse,
)

__all__ = [
    # Enums
    "AggregateKind",
    "IntentKind",
    # Requests
    "AskRequest",
    "ImportBooksRequest",
    # Responses
    "AskResponse",
    "BackfillResponse",
    "BookInfo",
    "ErrorResponse",
    "HealthResponse",
    "ImportBooksResponse",
    "ReadyResponse",
    "RebuildIndexResponse",
    "StoreProbeResponse",
]
