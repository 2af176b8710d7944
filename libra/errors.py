"""Error taxonomy for the Libra service."""


class LibraError(Exception):
    """Base error for the Libra service."""

    ...


class InputError(LibraError):
    """Raised when the raw query is empty or invalid."""

    ...


class CollaboratorUnavailable(LibraError):
    """Raised when the store or the embedding provider cannot be reached."""

    def __init__(self, operation: str, message: str = ""):
        self.operation = operation
        super().__init__(message or f"{operation} failed")


class RetrievalFailure(LibraError):
    """Raised when a retrieval or aggregate request could not search the catalog.

    Distinct from an empty result: zero items found is a valid outcome,
    this is "could not search".
    """

    def __init__(self, operation: str, query: str):
        self.operation = operation
        self.query = query
        super().__init__(f"Search failed during {operation}")
