"""Provider factory.

Builds the configured provider once per manager. There is no module-level
manager: callers own the instance and pass it where it is needed.
"""

import logging
from typing import Optional

from .config import LLMConfig, load_config
from .provider import LLMProvider

logger = logging.getLogger(__name__)


class LLMManager:
    """Lazily instantiates the configured provider."""

    def __init__(self, config: Optional[LLMConfig] = None) -> None:
        """Initialize the manager.

        Args:
            config: Optional provider config. If None, loads from config file.
        """
        self._config = config
        self._provider: Optional[LLMProvider] = None

    @property
    def config(self) -> LLMConfig:
        if self._config is None:
            self._config = load_config()
        return self._config

    def get_provider(self) -> Optional[LLMProvider]:
        """Get the configured provider.

        Returns:
            LLMProvider instance, or None if a cloud provider has no API key
            or its SDK cannot be imported.
        """
        if self._provider is not None:
            return self._provider

        provider_type = self.config.provider

        try:
            if provider_type == "gemini":
                from .gemini import GeminiProvider

                if not self.config.gemini.api_key:
                    logger.warning("Gemini selected but no API key configured")
                    return None
                self._provider = GeminiProvider(
                    api_key=self.config.gemini.api_key,
                    default_model=self.config.gemini.default_model,
                    embedding_model=self.config.gemini.embedding_model,
                    timeout=self.config.gemini.timeout,
                )

            elif provider_type == "openai":
                from .openai import OpenAIProvider

                if not self.config.openai.api_key:
                    logger.warning("OpenAI selected but no API key configured")
                    return None
                self._provider = OpenAIProvider(
                    api_key=self.config.openai.api_key,
                    default_model=self.config.openai.default_model,
                    embedding_model=self.config.openai.embedding_model,
                    base_url=self.config.openai.base_url or None,
                    timeout=self.config.openai.timeout,
                )

            elif provider_type == "ollama":
                from .ollama import OllamaProvider

                self._provider = OllamaProvider(
                    base_url=self.config.ollama.base_url,
                    default_model=self.config.ollama.default_model,
                    embedding_model=self.config.ollama.embedding_model,
                    timeout=self.config.ollama.timeout,
                )

            else:
                from .hashing import HashEmbeddingProvider

                self._provider = HashEmbeddingProvider(dimension=self.config.hash.dimension)
        except ImportError as e:
            logger.warning("Provider %s unavailable: %s", provider_type, e)
            return None

        logger.debug("Using %s provider", self._provider.name)
        return self._provider

    async def close(self) -> None:
        if self._provider is not None:
            await self._provider.close()
            self._provider = None
