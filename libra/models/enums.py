"""Enumeration types for the Libra service."""

from enum import StrEnum


class IntentKind(StrEnum):
    """Query intents, in router priority order."""

    COPIES_OF = "copies_of"
    AVAILABILITY_OF = "availability_of"
    AGGREGATE = "aggregate"
    CASUAL = "casual"
    RETRIEVAL = "retrieval"


class AggregateKind(StrEnum):
    """Aggregate statistics computed over the full catalog."""

    TOTAL_BOOKS = "total_books"
    AVAILABLE_BOOKS = "available_books"
    TOTAL_COPIES = "total_copies"
    TOPIC_COUNT = "topic_count"
