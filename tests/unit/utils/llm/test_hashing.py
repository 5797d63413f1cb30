"""Tests for the offline hashing embedder."""

import math

import pytest

from scout.utils.llm.hashing import HashEmbeddingProvider
from scout.utils.vectors import cosine_similarity


class TestHashEmbeddingProvider:
    """Feature-hashing embeddings."""

    def test_deterministic_unit_vectors(self):
        provider = HashEmbeddingProvider(dimension=64)
        first = provider.embed("parse the config file")

        assert first == provider.embed("Parse the CONFIG file")
        assert len(first) == 64
        assert math.isclose(math.sqrt(sum(v * v for v in first)), 1.0)

    def test_shared_words_are_closer(self):
        provider = HashEmbeddingProvider(dimension=256)
        base = provider.embed("load user session token")
        near = provider.embed("load user session")
        far = provider.embed("render chart axis legend")

        assert cosine_similarity(base, near) > cosine_similarity(base, far)

    def test_no_tokens_is_zero_vector(self):
        assert HashEmbeddingProvider(dimension=8).embed("  ... !!") == [0.0] * 8

    def test_invalid_dimension(self):
        with pytest.raises(ValueError):
            HashEmbeddingProvider(dimension=0)

    @pytest.mark.asyncio
    async def test_has_no_completion_model(self):
        provider = HashEmbeddingProvider(dimension=8)
        assert await provider.generate_text_async("hi") is None
        assert await provider.generate_json_async("hi") is None
        assert await provider.embed_async("hi") == provider.embed("hi")
