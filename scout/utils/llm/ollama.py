"""Ollama provider using httpx for API calls."""

import logging
from typing import Any, Optional

from .constants import (
    DEFAULT_EMBEDDING_MODELS,
    DEFAULT_MODELS,
    HTTP_KEEPALIVE_TIMEOUT,
    HTTP_MAX_CONNECTIONS,
    OLLAMA_TIMEOUT,
)
from .json_parser import parse_json_response
from .provider import LLMProvider

logger = logging.getLogger(__name__)


class OllamaProvider(LLMProvider):
    """Provider for models served by a local Ollama server.

    Talks to the HTTP API directly; no SDK dependency required.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        default_model: str = DEFAULT_MODELS["ollama"],
        embedding_model: str = DEFAULT_EMBEDDING_MODELS["ollama"],
        timeout: float = OLLAMA_TIMEOUT,
    ) -> None:
        """Initialize Ollama provider.

        Args:
            base_url: Ollama server URL (default: http://localhost:11434).
            default_model: Default completion model.
            embedding_model: Model used by embed_async.
            timeout: Request timeout in seconds (higher for local inference).
        """
        self._base_url = base_url.rstrip("/")
        self._default_model = default_model
        self._embedding_model = embedding_model
        self._timeout = timeout
        # Reusable async client for connection pooling
        self._async_client: Any = None

    @property
    def name(self) -> str:
        return "ollama"

    @property
    def default_model(self) -> str:
        return self._default_model

    @property
    def embedding_model(self) -> str:
        return self._embedding_model

    def _get_httpx(self) -> Any:
        try:
            import httpx
        except ImportError as exc:
            raise ImportError(
                "httpx package is required for Ollama provider. "
                "Install with: pip install httpx"
            ) from exc
        return httpx

    async def _get_async_client(self) -> Any:
        """Get or create the pooled async HTTP client."""
        if self._async_client is None:
            httpx = self._get_httpx()
            limits = httpx.Limits(
                max_connections=HTTP_MAX_CONNECTIONS,
                max_keepalive_connections=HTTP_MAX_CONNECTIONS,
                keepalive_expiry=HTTP_KEEPALIVE_TIMEOUT,
            )
            self._async_client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                limits=limits,
            )
        return self._async_client

    async def close(self) -> None:
        """Close the async HTTP client and release pooled connections."""
        if self._async_client is not None:
            await self._async_client.aclose()
            self._async_client = None

    async def _generate(self, payload: dict[str, Any]) -> Optional[str]:
        client = await self._get_async_client()
        response = await client.post("/api/generate", json=payload)
        response.raise_for_status()
        data = response.json()
        return data.get("response")

    async def generate_text_async(
        self,
        prompt: str,
        model: str | None = None,
        sanitize: bool = True,
    ) -> Optional[str]:
        text = self._sanitize_prompt(prompt) if sanitize else prompt
        try:
            return await self._generate(
                {"model": model or self._default_model, "prompt": text, "stream": False}
            )
        except ImportError as e:
            logger.warning("httpx not available: %s", e)
        except Exception as e:
            logger.debug("Ollama generation failed: %s: %s", type(e).__name__, e)
        return None

    async def generate_json_async(
        self,
        prompt: str,
        model: str | None = None,
        sanitize: bool = True,
    ) -> Optional[dict[str, Any]]:
        """Generate JSON using Ollama's native ``format: json`` mode.

        Retries once without the format flag for models that reject it.
        """
        text = self._sanitize_prompt(prompt) if sanitize else prompt
        payload = {
            "model": model or self._default_model,
            "prompt": f"{text}\n\nRespond with valid JSON only.",
            "stream": False,
        }

        try:
            raw = await self._generate({**payload, "format": "json"})
            if raw:
                return parse_json_response(raw)
        except ImportError as e:
            logger.warning("httpx not available: %s", e)
            return None
        except Exception as e:
            logger.debug("Ollama JSON mode failed, trying without: %s", e)
            try:
                raw = await self._generate(payload)
                if raw:
                    return parse_json_response(raw)
            except Exception as e2:
                logger.debug("Ollama fallback generation failed: %s", e2)

        return None

    async def embed_async(self, text: str) -> Optional[list[float]]:
        try:
            client = await self._get_async_client()
        except ImportError as e:
            logger.warning("httpx not available: %s", e)
            return None

        try:
            response = await client.post(
                "/api/embed",
                json={"model": self._embedding_model, "input": self._sanitize_embed_input(text)},
            )
            response.raise_for_status()
            embeddings = response.json().get("embeddings") or []
            if embeddings and embeddings[0]:
                return [float(value) for value in embeddings[0]]
        except Exception as e:
            logger.debug("Ollama embedding failed: %s: %s", type(e).__name__, e)

        return None
