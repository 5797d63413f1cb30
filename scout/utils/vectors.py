"""Vector math: normalization, similarity metrics and validity checks.

All functions are pure and accept plain sequences; results come back as
Python floats and lists. ``normalize`` is lenient (bad input becomes a zero
vector) while ``is_valid_vector`` is the strict guard used by stores before a
vector is written or queried.
"""

from __future__ import annotations

import math
import re
from numbers import Real
from typing import Literal, Optional, Sequence

import numpy as np

from scout.errors import DimensionMismatchError, UnknownMetricError

SimilarityMetric = Literal["cosine", "euclidean", "dot"]
DistanceMethod = Literal["euclidean", "manhattan", "chebyshev"]

SIMILARITY_METRICS: tuple[str, ...] = ("cosine", "euclidean", "dot")

_WHITESPACE_RE = re.compile(r"\s+")
_SPACES_RE = re.compile(r"[ \t]+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n\s*\n")


def _as_array(vector: Sequence[float]) -> Optional[np.ndarray]:
    """Float array of ``vector``, or None if any element is not a real number.

    Booleans are rejected even though numpy would coerce them.
    """
    if isinstance(vector, np.ndarray):
        if not np.issubdtype(vector.dtype, np.number) or np.issubdtype(vector.dtype, np.bool_):
            return None
        return vector.astype(np.float64).ravel()
    for value in vector:
        if isinstance(value, (bool, np.bool_)) or not isinstance(value, Real):
            return None
    return np.asarray(vector, dtype=np.float64)


def is_valid_vector(vector: Sequence[float] | None) -> bool:
    """Return True if ``vector`` is non-empty and every element is a finite number."""
    if vector is None or isinstance(vector, (str, bytes)):
        return False
    try:
        if len(vector) == 0:
            return False
        array = _as_array(vector)
    except TypeError:
        return False
    return array is not None and bool(np.isfinite(array).all())


def _norm(array: np.ndarray) -> float:
    with np.errstate(over="ignore", invalid="ignore"):
        value = float(np.linalg.norm(array))
    return value if math.isfinite(value) else 0.0


def magnitude(vector: Sequence[float]) -> float:
    """Euclidean norm of ``vector``; 0.0 when the norm is not finite."""
    array = _as_array(vector)
    if array is None:
        return 0.0
    return _norm(array)


def normalize(vector: Sequence[float]) -> list[float]:
    """Scale ``vector`` to unit length.

    A zero-norm vector, or one with any non-finite component, comes back as a
    zero vector of the same length instead of raising.
    """
    array = _as_array(vector)
    if array is None or not np.isfinite(array).all():
        return [0.0] * len(vector)
    norm = _norm(array)
    if norm == 0.0:
        return [0.0] * len(vector)
    return (array / norm).tolist()


def _dot(a: np.ndarray, b: np.ndarray) -> float:
    with np.errstate(over="ignore", invalid="ignore"):
        return float(np.dot(a, b))


def _euclidean(a: np.ndarray, b: np.ndarray) -> float:
    with np.errstate(over="ignore", invalid="ignore"):
        return float(np.linalg.norm(a - b))


def _check_dimensions(a: Sequence[float], b: Sequence[float]) -> None:
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b))


def _pair(a: Sequence[float], b: Sequence[float]) -> Optional[tuple[np.ndarray, np.ndarray]]:
    left = _as_array(a)
    right = _as_array(b)
    if left is None or right is None:
        return None
    return left, right


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    pair = _pair(a, b)
    if pair is None:
        return 0.0
    left, right = pair
    norm_a = _norm(left)
    norm_b = _norm(right)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    value = _dot(left, right) / (norm_a * norm_b)
    if not math.isfinite(value):
        return 0.0
    return max(-1.0, min(1.0, value))


def euclidean_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Inverted distance ``1 / (1 + d)``: 1.0 at d == 0, decreasing, never negative."""
    pair = _pair(a, b)
    if pair is None:
        return 0.0
    dist = _euclidean(*pair)
    if not math.isfinite(dist):
        return 0.0
    return 1.0 / (1.0 + dist)


def dot_product(a: Sequence[float], b: Sequence[float]) -> float:
    pair = _pair(a, b)
    if pair is None:
        return 0.0
    value = _dot(*pair)
    return value if math.isfinite(value) else 0.0


def similarity(
    a: Sequence[float],
    b: Sequence[float],
    metric: str = "cosine",
) -> float:
    """Compare two vectors under ``metric``.

    Args:
        a: First vector.
        b: Second vector, same length as ``a``.
        metric: One of "cosine", "euclidean", "dot".

    Returns:
        Similarity score; higher is more similar.

    Raises:
        DimensionMismatchError: If the vectors differ in length.
        UnknownMetricError: If ``metric`` is not supported.
    """
    if metric not in SIMILARITY_METRICS:
        raise UnknownMetricError(metric)
    _check_dimensions(a, b)
    if len(a) == 0:
        return 0.0
    if metric == "cosine":
        return cosine_similarity(a, b)
    if metric == "euclidean":
        return euclidean_similarity(a, b)
    return dot_product(a, b)


def distance(
    a: Sequence[float],
    b: Sequence[float],
    method: str = "euclidean",
) -> float:
    """Distance between two vectors (euclidean, manhattan or chebyshev)."""
    if method not in ("euclidean", "manhattan", "chebyshev"):
        raise UnknownMetricError(method)
    _check_dimensions(a, b)
    pair = _pair(a, b)
    if pair is None:
        return math.nan
    left, right = pair
    if method == "euclidean":
        return _euclidean(left, right)
    if left.size == 0:
        return 0.0
    diff = np.abs(left - right)
    if method == "manhattan":
        return float(np.sum(diff))
    return float(np.max(diff))


def vector_mean(vectors: Sequence[Sequence[float]]) -> list[float]:
    """Component-wise mean. Returns [] for no vectors."""
    if len(vectors) == 0:
        return []
    for vector in vectors:
        _check_dimensions(vectors[0], vector)
    return np.mean(np.asarray(vectors, dtype=np.float64), axis=0).tolist()


# =============================================================================
# Text preparation
# =============================================================================


def preprocess_text_for_embedding(text: str) -> str:
    """Collapse whitespace and squeeze repeated punctuation."""
    if not text:
        return ""
    cleaned = _WHITESPACE_RE.sub(" ", text).strip()
    cleaned = re.sub(r"\.{2,}", "...", cleaned)
    cleaned = re.sub(r"!{2,}", "!", cleaned)
    return re.sub(r"\?{2,}", "?", cleaned)


def preprocess_code_for_embedding(code: str) -> str:
    """Collapse runs of spaces/tabs and keep at most one blank line in a row."""
    if not code:
        return ""
    cleaned = _SPACES_RE.sub(" ", code)
    return _BLANK_LINES_RE.sub("\n\n", cleaned).strip()


def is_valid_text_for_embedding(
    text: str, min_length: int = 10, max_length: int = 8000
) -> bool:
    if not text or not isinstance(text, str):
        return False
    cleaned = preprocess_text_for_embedding(text)
    return min_length <= len(cleaned) <= max_length
