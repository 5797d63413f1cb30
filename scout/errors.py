"""Exception hierarchy for stores, vector math and retrieval."""

from __future__ import annotations


class ScoutError(Exception):
    """Base class for all code-scout errors."""


class StoreError(ScoutError):
    """Raised by document store backends."""


class NotInitializedError(StoreError, RuntimeError):
    """A store operation was called before ``initialize()`` completed."""

    def __init__(self, backend: str) -> None:
        super().__init__(f"{backend} not initialized. Call initialize() first.")
        self.backend = backend


class InvalidVectorError(StoreError, ValueError):
    """A vector handed to a write operation is empty or has non-finite values."""


class InvalidQueryVectorError(InvalidVectorError):
    """A query vector is empty or has non-finite values."""


class DimensionMismatchError(ScoutError, ValueError):
    """Two vectors that must share a length do not."""

    def __init__(self, left: int, right: int) -> None:
        super().__init__(f"Vectors must have the same dimension: {left} vs {right}")
        self.left = left
        self.right = right


class UnknownMetricError(ScoutError, ValueError):
    """A similarity or distance metric name is not supported."""

    def __init__(self, metric: str) -> None:
        super().__init__(f"Unknown metric: {metric!r}")
        self.metric = metric


class EmbeddingError(ScoutError):
    """The embedding provider returned nothing usable for a text."""


class RetrievalError(ScoutError):
    """Every search term failed to produce an embedding.

    Attributes:
        term_errors: Mapping of search term to the exception it raised.
    """

    def __init__(self, term_errors: dict[str, BaseException]) -> None:
        details = ", ".join(
            f"{term!r}: {type(exc).__name__}" for term, exc in term_errors.items()
        )
        super().__init__(f"Retrieval failed for every search term ({details})")
        self.term_errors = term_errors
