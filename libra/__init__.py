"""Libra - hybrid retrieval assistant for a library book catalog."""

__version__ = "1.0.0"
