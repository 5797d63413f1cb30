"""Gemini provider using the google-genai SDK."""

import asyncio
import logging
from typing import Any, Optional

from .constants import DEFAULT_API_TIMEOUT, DEFAULT_EMBEDDING_MODELS, DEFAULT_MODELS
from .json_parser import parse_json_response
from .provider import LLMProvider

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProvider):
    """Provider for Google Gemini models.

    The SDK client is synchronous; async methods run it in the default
    executor so the event loop is never blocked.
    """

    def __init__(
        self,
        api_key: str,
        default_model: str = DEFAULT_MODELS["gemini"],
        embedding_model: str = DEFAULT_EMBEDDING_MODELS["gemini"],
        timeout: float = DEFAULT_API_TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._default_model = default_model
        self._embedding_model = embedding_model
        self._timeout = timeout
        self._client: Any = None

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def default_model(self) -> str:
        return self._default_model

    @property
    def embedding_model(self) -> str:
        return self._embedding_model

    def _get_client(self) -> Any:
        """Get or create the Gemini client."""
        if self._client is None:
            try:
                from google import genai
            except ImportError as exc:
                raise ImportError(
                    "google-genai package is required for Gemini provider. "
                    "Install with: pip install google-genai"
                ) from exc
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def _generate_text(self, prompt: str, model: str | None, sanitize: bool) -> Optional[str]:
        try:
            client = self._get_client()
        except ImportError as e:
            logger.warning("Gemini SDK not available: %s", e)
            return None

        text = self._sanitize_prompt(prompt) if sanitize else prompt
        model_name = model or self._default_model

        try:
            response = client.models.generate_content(
                model=model_name,
                contents=text,
            )
            if response and response.text:
                return response.text
        except Exception as e:
            logger.debug("Gemini generation failed: %s: %s", type(e).__name__, e)

        return None

    def _embed(self, text: str) -> Optional[list[float]]:
        try:
            client = self._get_client()
        except ImportError as e:
            logger.warning("Gemini SDK not available: %s", e)
            return None

        try:
            result = client.models.embed_content(
                model=self._embedding_model,
                contents=self._sanitize_embed_input(text),
            )
            if result and result.embeddings:
                values = result.embeddings[0].values
                if values:
                    return list(values)
        except Exception as e:
            logger.debug("Gemini embedding failed: %s: %s", type(e).__name__, e)

        return None

    async def generate_text_async(
        self,
        prompt: str,
        model: str | None = None,
        sanitize: bool = True,
    ) -> Optional[str]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, lambda: self._generate_text(prompt, model, sanitize)
        )

    async def generate_json_async(
        self,
        prompt: str,
        model: str | None = None,
        sanitize: bool = True,
    ) -> Optional[dict[str, Any]]:
        json_prompt = (
            f"{prompt}\n\nRespond with valid JSON only, no markdown or explanation."
        )
        response = await self.generate_text_async(json_prompt, model=model, sanitize=sanitize)
        if response:
            return parse_json_response(response)
        return None

    async def embed_async(self, text: str) -> Optional[list[float]]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self._embed(text))
