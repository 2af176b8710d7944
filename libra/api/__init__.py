"""API utilities and dependencies.

This package contains shared API utilities:
- deps: FastAPI dependency injection functions
"""

from .deps import (
    LibraState,
    get_engine,
    get_state,
    sanitize_error_message,
)

__all__ = [
    "LibraState",
    "get_engine",
    "get_state",
    "sanitize_error_message",
]
