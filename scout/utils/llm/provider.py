"""Abstract base class for embedding and completion providers."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from .constants import MAX_EMBED_INPUT_LENGTH, MAX_PROMPT_LENGTH

logger = logging.getLogger(__name__)


class LLMProvider(ABC):
    """Abstract base class for model providers.

    Providers never raise on request failures: they log and return None so a
    single failed call degrades one answer or one search term, not the caller.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name (e.g., 'gemini', 'openai', 'ollama')."""
        ...

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Return the default completion model for this provider."""
        ...

    @property
    @abstractmethod
    def embedding_model(self) -> str:
        """Return the embedding model for this provider."""
        ...

    @abstractmethod
    async def generate_text_async(
        self,
        prompt: str,
        model: str | None = None,
        sanitize: bool = True,
    ) -> Optional[str]:
        """Generate a text completion.

        Args:
            prompt: The input prompt.
            model: Model to use (defaults to provider's default_model).
            sanitize: If True, truncate prompt to max safe length.

        Returns:
            Generated text, or None on error.
        """
        ...

    @abstractmethod
    async def generate_json_async(
        self,
        prompt: str,
        model: str | None = None,
        sanitize: bool = True,
    ) -> Optional[dict[str, Any]]:
        """Generate a JSON completion with robust parsing.

        Args:
            prompt: The input prompt (should request JSON output).
            model: Model to use (defaults to provider's default_model).
            sanitize: If True, truncate prompt to max safe length.

        Returns:
            Parsed JSON dict, or None on error/parse failure.
        """
        ...

    @abstractmethod
    async def embed_async(self, text: str) -> Optional[list[float]]:
        """Embed ``text`` with the provider's embedding model.

        Returns:
            The embedding vector, or None on error.
        """
        ...

    async def close(self) -> None:
        """Release network clients. Safe to call more than once."""
        return None

    def _sanitize_prompt(self, prompt: str, max_length: int = MAX_PROMPT_LENGTH) -> str:
        """Truncate prompt to max safe length for LLM processing."""
        return prompt[:max_length] if len(prompt) > max_length else prompt

    def _sanitize_embed_input(self, text: str) -> str:
        return self._sanitize_prompt(text, MAX_EMBED_INPUT_LENGTH)
