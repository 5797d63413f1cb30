"""Tests for the HTTP and SDK backed providers, with transports stubbed out."""

import json
from types import SimpleNamespace

import httpx
import pytest

from scout.utils.llm.constants import MAX_EMBED_INPUT_LENGTH
from scout.utils.llm.gemini import GeminiProvider
from scout.utils.llm.ollama import OllamaProvider
from scout.utils.llm.openai import OpenAIProvider


def _ollama(handler) -> OllamaProvider:
    provider = OllamaProvider(base_url="http://ollama.test")
    provider._async_client = httpx.AsyncClient(
        base_url="http://ollama.test", transport=httpx.MockTransport(handler)
    )
    return provider


class TestOllamaProvider:
    """OllamaProvider over a mock transport."""

    @pytest.mark.asyncio
    async def test_embed(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"embeddings": [[0.1, 0.2]]})

        provider = _ollama(handler)
        try:
            assert await provider.embed_async("x" * (MAX_EMBED_INPUT_LENGTH + 10)) == [0.1, 0.2]
        finally:
            await provider.close()

        assert seen["path"] == "/api/embed"
        assert seen["body"]["model"] == provider.embedding_model
        assert len(seen["body"]["input"]) == MAX_EMBED_INPUT_LENGTH

    @pytest.mark.asyncio
    async def test_embed_server_error_returns_none(self):
        provider = _ollama(lambda request: httpx.Response(500))
        try:
            assert await provider.embed_async("text") is None
        finally:
            await provider.close()

    @pytest.mark.asyncio
    async def test_json_mode_falls_back_without_format(self):
        payloads = []

        def handler(request: httpx.Request) -> httpx.Response:
            payload = json.loads(request.content)
            payloads.append(payload)
            if "format" in payload:
                return httpx.Response(400)
            return httpx.Response(200, json={"response": '```json\n{"terms": ["a"]}\n```'})

        provider = _ollama(handler)
        try:
            assert await provider.generate_json_async("terms?") == {"terms": ["a"]}
        finally:
            await provider.close()

        assert [("format" in p) for p in payloads] == [True, False]


class _FakeOpenAIClient:
    def __init__(self, embedding=None, content=None):
        self.closed = False
        self.embeddings = SimpleNamespace(create=self._embed)
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._complete))
        self._embedding = embedding
        self._content = content

    async def _embed(self, model, input):
        if self._embedding is None:
            raise RuntimeError("rate limited")
        return SimpleNamespace(data=[SimpleNamespace(embedding=self._embedding)])

    async def _complete(self, model, messages, **kwargs):
        message = SimpleNamespace(content=self._content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    async def close(self):
        self.closed = True


class TestOpenAIProvider:
    """OpenAIProvider with a stand-in SDK client."""

    @pytest.mark.asyncio
    async def test_embed_and_close(self):
        provider = OpenAIProvider(api_key="sk-test")
        client = _FakeOpenAIClient(embedding=[0.5, 0.5])
        provider._async_client = client

        assert await provider.embed_async("hello") == [0.5, 0.5]
        await provider.close()
        assert client.closed

    @pytest.mark.asyncio
    async def test_embed_failure_returns_none(self):
        provider = OpenAIProvider(api_key="sk-test")
        provider._async_client = _FakeOpenAIClient(embedding=None)
        assert await provider.embed_async("hello") is None

    @pytest.mark.asyncio
    async def test_generate(self):
        provider = OpenAIProvider(api_key="sk-test")
        provider._async_client = _FakeOpenAIClient(content='{"terms": ["b"]}')

        assert await provider.generate_text_async("hi") == '{"terms": ["b"]}'
        assert await provider.generate_json_async("hi") == {"terms": ["b"]}


class _FakeGeminiModels:
    def __init__(self, values=None, text=None):
        self.calls = []
        self._values = values
        self._text = text

    def embed_content(self, model, contents):
        self.calls.append(("embed", model, contents))
        if self._values is None:
            raise RuntimeError("quota exceeded")
        return SimpleNamespace(embeddings=[SimpleNamespace(values=self._values)])

    def generate_content(self, model, contents):
        self.calls.append(("generate", model, contents))
        return SimpleNamespace(text=self._text)


class TestGeminiProvider:
    """GeminiProvider with a stand-in SDK client."""

    @pytest.mark.asyncio
    async def test_embed(self):
        provider = GeminiProvider(api_key="g-test")
        models = _FakeGeminiModels(values=(0.25, -0.5))
        provider._client = SimpleNamespace(models=models)

        assert await provider.embed_async("x" * (MAX_EMBED_INPUT_LENGTH + 5)) == [0.25, -0.5]

        kind, model, contents = models.calls[0]
        assert (kind, model) == ("embed", provider.embedding_model)
        assert len(contents) == MAX_EMBED_INPUT_LENGTH

    @pytest.mark.asyncio
    async def test_embed_failure_returns_none(self):
        provider = GeminiProvider(api_key="g-test")
        provider._client = SimpleNamespace(models=_FakeGeminiModels(values=None))
        assert await provider.embed_async("hello") is None

    @pytest.mark.asyncio
    async def test_empty_embedding_returns_none(self):
        provider = GeminiProvider(api_key="g-test")
        provider._client = SimpleNamespace(models=_FakeGeminiModels(values=[]))
        assert await provider.embed_async("hello") is None

    @pytest.mark.asyncio
    async def test_generate_json(self):
        provider = GeminiProvider(api_key="g-test")
        models = _FakeGeminiModels(text='```json\n{"terms": ["c"]}\n```')
        provider._client = SimpleNamespace(models=models)

        assert await provider.generate_json_async("terms?") == {"terms": ["c"]}
        assert "Respond with valid JSON only" in models.calls[0][2]
