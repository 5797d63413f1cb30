"""Tests for application wiring and logging setup."""

import logging

import pytest

from scout.config import Settings
from scout.core.chat import NO_ANSWER
from scout.main import build_services, setup_logging
from scout.utils.llm import HashEmbeddingProvider, LLMConfig


def _settings(tmp_path, **overrides) -> Settings:
    return Settings(
        _env_file=None,
        store_provider="memory",
        vector_dimension=256,
        log_file=tmp_path / "logs" / "scout.log",
        **overrides,
    )


class TestBuildServices:
    """build_services()."""

    @pytest.mark.asyncio
    async def test_offline_pipeline(self, tmp_path):
        services = await build_services(_settings(tmp_path, enable_ai=False))
        try:
            assert isinstance(services.provider, HashEmbeddingProvider)
            assert services.provider.dimension == 256

            await services.indexer.index_source(
                "auth.py", "def login(user, password):\n    return verify(user, password)"
            )
            await services.indexer.index_source("chart.py", "def render_chart(axis): pass")

            response = await services.chat.ask("login password")

            assert response.sources[0].id == "auth.py#0"
            assert response.answer == NO_ANSWER
            assert response.search_terms[0] == "login password"
        finally:
            await services.close()

    @pytest.mark.asyncio
    async def test_unusable_provider_falls_back_to_hash(self, tmp_path):
        services = await build_services(
            _settings(tmp_path), llm_config=LLMConfig(provider="openai")
        )
        try:
            assert isinstance(services.provider, HashEmbeddingProvider)
            assert services.manager is None
        finally:
            await services.close()


def test_setup_logging_writes_to_file(tmp_path):
    root = logging.getLogger()
    before = list(root.handlers)
    settings = _settings(tmp_path, log_level="DEBUG")
    try:
        setup_logging(settings)
        logging.getLogger("scout.test").info("hello from test")
        for handler in root.handlers:
            handler.flush()

        assert "hello from test" in settings.log_file.read_text()
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
                handler.close()


class TestDimensionWiring:
    """The default hash embedder follows Settings.vector_dimension."""

    @pytest.mark.asyncio
    async def test_default_hash_provider_uses_vector_dimension(self, tmp_path):
        config = LLMConfig()
        services = await build_services(_settings(tmp_path), llm_config=config)
        try:
            assert services.manager is not None
            assert services.provider.dimension == 256
            assert config.hash.dimension == 1536
        finally:
            await services.close()

    @pytest.mark.asyncio
    async def test_chroma_store_with_default_hash_provider(self, tmp_path):
        pytest.importorskip("chromadb")
        settings = Settings(
            _env_file=None,
            store_provider="chroma",
            chroma_path=tmp_path / "chroma",
            vector_dimension=256,
            log_file=tmp_path / "scout.log",
        )
        services = await build_services(settings, llm_config=LLMConfig())
        try:
            await services.indexer.index_source("auth.py", "def login(user, password): return token")

            result = await services.retriever.retrieve("login password")

            assert (await services.store.get("auth.py#0")).vector is not None
            assert [r.id for r in result.results] == ["auth.py#0"]
        finally:
            await services.close()
