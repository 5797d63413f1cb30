"""Offline provider with deterministic feature-hashing embeddings."""

import hashlib
import logging
import re
from typing import Any, Optional

import numpy as np

from ..vectors import normalize
from .constants import DEFAULT_HASH_DIMENSION
from .provider import LLMProvider

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+")


class HashEmbeddingProvider(LLMProvider):
    """Embeds text without a model by hashing tokens into a fixed-size vector.

    Each lowercase word token adds +1 or -1 to one bucket picked by its hash,
    and the result is normalized (zero stays zero). Texts that share words
    point in similar directions, which is enough for development and tests. There is no
    completion model, so text and JSON generation always return None.
    """

    def __init__(self, dimension: int = DEFAULT_HASH_DIMENSION) -> None:
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self._dimension = dimension

    @property
    def name(self) -> str:
        return "hash"

    @property
    def default_model(self) -> str:
        return ""

    @property
    def embedding_model(self) -> str:
        return f"feature-hash-{self._dimension}"

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> list[float]:
        """Embed ``text``; text without word tokens maps to the zero vector."""
        vector = np.zeros(self._dimension, dtype=np.float64)
        tokens = _TOKEN_RE.findall(text.lower())
        for token in tokens:
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:8], "big") % self._dimension
            vector[bucket] += 1.0 if digest[8] & 1 else -1.0
        return normalize(vector)

    async def embed_async(self, text: str) -> list[float]:
        return self.embed(text)

    async def generate_text_async(
        self,
        prompt: str,
        model: str | None = None,
        sanitize: bool = True,
    ) -> Optional[str]:
        logger.debug("Hash provider has no completion model")
        return None

    async def generate_json_async(
        self,
        prompt: str,
        model: str | None = None,
        sanitize: bool = True,
    ) -> Optional[dict[str, Any]]:
        logger.debug("Hash provider has no completion model")
        return None
