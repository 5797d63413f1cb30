"""OpenAI provider using the openai SDK."""

import logging
from typing import Any, Optional

from .constants import DEFAULT_API_TIMEOUT, DEFAULT_EMBEDDING_MODELS, DEFAULT_MODELS
from .json_parser import parse_json_response
from .provider import LLMProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """Provider for OpenAI chat and embedding models.

    Also supports Azure OpenAI and other OpenAI-compatible endpoints via
    base_url.
    """

    def __init__(
        self,
        api_key: str,
        default_model: str = DEFAULT_MODELS["openai"],
        embedding_model: str = DEFAULT_EMBEDDING_MODELS["openai"],
        base_url: str | None = None,
        timeout: float = DEFAULT_API_TIMEOUT,
    ) -> None:
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key.
            default_model: Default chat model.
            embedding_model: Model used by embed_async.
            base_url: Optional custom base URL (for Azure, etc.).
            timeout: Request timeout in seconds.
        """
        self._api_key = api_key
        self._default_model = default_model
        self._embedding_model = embedding_model
        self._base_url = base_url
        self._timeout = timeout
        self._async_client: Any = None

    @property
    def name(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return self._default_model

    @property
    def embedding_model(self) -> str:
        return self._embedding_model

    def _get_async_client(self) -> Any:
        """Get or create the async OpenAI client."""
        if self._async_client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError as exc:
                raise ImportError(
                    "openai package is required for OpenAI provider. "
                    "Install with: pip install openai"
                ) from exc

            kwargs: dict[str, Any] = {
                "api_key": self._api_key,
                "timeout": self._timeout,
            }
            if self._base_url:
                kwargs["base_url"] = self._base_url
            self._async_client = AsyncOpenAI(**kwargs)
        return self._async_client

    async def close(self) -> None:
        if self._async_client is not None:
            await self._async_client.close()
            self._async_client = None

    async def generate_text_async(
        self,
        prompt: str,
        model: str | None = None,
        sanitize: bool = True,
    ) -> Optional[str]:
        try:
            client = self._get_async_client()
        except ImportError as e:
            logger.warning("OpenAI SDK not available: %s", e)
            return None

        text = self._sanitize_prompt(prompt) if sanitize else prompt
        model_name = model or self._default_model

        try:
            response = await client.chat.completions.create(
                model=model_name,
                messages=[{"role": "user", "content": text}],
            )
            if response.choices and response.choices[0].message.content:
                return response.choices[0].message.content
        except Exception as e:
            logger.debug("OpenAI generation failed: %s: %s", type(e).__name__, e)

        return None

    async def generate_json_async(
        self,
        prompt: str,
        model: str | None = None,
        sanitize: bool = True,
    ) -> Optional[dict[str, Any]]:
        """Generate JSON, using OpenAI's native JSON mode when the model has it."""
        try:
            client = self._get_async_client()
        except ImportError as e:
            logger.warning("OpenAI SDK not available: %s", e)
            return None

        text = self._sanitize_prompt(prompt) if sanitize else prompt
        model_name = model or self._default_model
        json_prompt = f"{text}\n\nRespond with valid JSON only."

        try:
            response = await client.chat.completions.create(
                model=model_name,
                messages=[{"role": "user", "content": json_prompt}],
                response_format={"type": "json_object"},
            )
            if response.choices and response.choices[0].message.content:
                return parse_json_response(response.choices[0].message.content)
        except Exception as e:
            logger.debug("OpenAI JSON mode failed, trying without: %s", e)
            try:
                response = await client.chat.completions.create(
                    model=model_name,
                    messages=[{"role": "user", "content": json_prompt}],
                )
                if response.choices and response.choices[0].message.content:
                    return parse_json_response(response.choices[0].message.content)
            except Exception as e2:
                logger.debug("OpenAI fallback generation failed: %s", e2)

        return None

    async def embed_async(self, text: str) -> Optional[list[float]]:
        try:
            client = self._get_async_client()
        except ImportError as e:
            logger.warning("OpenAI SDK not available: %s", e)
            return None

        try:
            response = await client.embeddings.create(
                model=self._embedding_model,
                input=self._sanitize_embed_input(text),
            )
            if response.data:
                return list(response.data[0].embedding)
        except Exception as e:
            logger.debug("OpenAI embedding failed: %s: %s", type(e).__name__, e)

        return None
