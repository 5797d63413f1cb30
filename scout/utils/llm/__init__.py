"""Embedding and completion providers behind one interface.

Providers: "hash" (offline feature hashing, default), "gemini" (google-genai
SDK), "openai" (openai SDK), "ollama" (httpx against a local server).
Configuration is read from ~/.scout/config.toml with SCOUT_* overrides.

Example config.toml:
    [llm]
    provider = "openai"

    [llm.openai]
    api_key = "your-api-key"
    embedding_model = "text-embedding-3-small"
"""

from .config import (
    GeminiConfig,
    HashConfig,
    LLMConfig,
    OllamaConfig,
    OpenAIConfig,
    get_example_config,
    load_config,
)
from .hashing import HashEmbeddingProvider
from .json_parser import parse_json_response
from .manager import LLMManager
from .provider import LLMProvider

__all__ = [
    "load_config",
    "get_example_config",
    "parse_json_response",
    # Classes
    "LLMManager",
    "LLMProvider",
    "HashEmbeddingProvider",
    # Config classes
    "LLMConfig",
    "GeminiConfig",
    "OpenAIConfig",
    "OllamaConfig",
    "HashConfig",
]
