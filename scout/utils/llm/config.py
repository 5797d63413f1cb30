"""Configuration for model providers.

Reads ~/.scout/config.toml and environment variables. Environment variables
take precedence over config file values.
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Mapping, Optional, cast

from .constants import (
    DEFAULT_API_TIMEOUT,
    DEFAULT_EMBEDDING_MODELS,
    DEFAULT_HASH_DIMENSION,
    DEFAULT_MODELS,
    OLLAMA_TIMEOUT,
)

logger = logging.getLogger(__name__)

ProviderType = Literal["gemini", "openai", "ollama", "hash"]

PROVIDER_TYPES: tuple[str, ...] = ("gemini", "openai", "ollama", "hash")

DEFAULT_CONFIG_PATH = Path.home() / ".scout" / "config.toml"


@dataclass
class GeminiConfig:
    api_key: str = ""
    default_model: str = DEFAULT_MODELS["gemini"]
    embedding_model: str = DEFAULT_EMBEDDING_MODELS["gemini"]
    timeout: float = DEFAULT_API_TIMEOUT


@dataclass
class OpenAIConfig:
    api_key: str = ""
    default_model: str = DEFAULT_MODELS["openai"]
    embedding_model: str = DEFAULT_EMBEDDING_MODELS["openai"]
    base_url: str = ""  # Optional, for Azure/custom endpoints
    timeout: float = DEFAULT_API_TIMEOUT


@dataclass
class OllamaConfig:
    base_url: str = "http://localhost:11434"
    default_model: str = DEFAULT_MODELS["ollama"]
    embedding_model: str = DEFAULT_EMBEDDING_MODELS["ollama"]
    timeout: float = OLLAMA_TIMEOUT


@dataclass
class HashConfig:
    dimension: int = DEFAULT_HASH_DIMENSION


@dataclass
class LLMConfig:
    """Provider selection plus per-provider settings."""

    provider: ProviderType = "hash"
    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    ollama: OllamaConfig = field(default_factory=OllamaConfig)
    hash: HashConfig = field(default_factory=HashConfig)


def _load_toml(path: Path) -> dict[str, Any]:
    """Parse a TOML file; a missing or malformed file yields an empty dict."""
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        logger.warning("Ignoring malformed config file %s: %s", path, e)
        return {}


def _pick(env: Mapping[str, str], names: tuple[str, ...], section: Mapping[str, Any], key: str, default: Any) -> Any:
    for name in names:
        value = env.get(name)
        if value:
            return value
    return section.get(key, default)


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> LLMConfig:
    """Load provider configuration from file and environment.

    Configuration sources (in order of precedence):
    1. Environment variables (SCOUT_*, plus OPENAI_API_KEY / GOOGLE_API_KEY)
    2. Config file (~/.scout/config.toml), ``[llm]`` table
    3. Default values

    Args:
        config_path: Optional path to config file. Defaults to ~/.scout/config.toml.
        environ: Environment mapping. Defaults to ``os.environ``.

    Returns:
        LLMConfig with merged configuration.
    """
    env = os.environ if environ is None else environ
    llm_config = _load_toml(config_path or DEFAULT_CONFIG_PATH).get("llm", {})

    config = LLMConfig()
    config.provider = _get_provider_type(
        env.get("SCOUT_LLM_PROVIDER") or llm_config.get("provider", "hash")
    )

    gemini = llm_config.get("gemini", {})
    config.gemini = GeminiConfig(
        api_key=_pick(env, ("SCOUT_GEMINI_API_KEY", "GOOGLE_API_KEY"), gemini, "api_key", ""),
        default_model=_pick(env, ("SCOUT_GEMINI_MODEL",), gemini, "default_model", DEFAULT_MODELS["gemini"]),
        embedding_model=_pick(
            env, ("SCOUT_GEMINI_EMBEDDING_MODEL",), gemini, "embedding_model", DEFAULT_EMBEDDING_MODELS["gemini"]
        ),
        timeout=float(_pick(env, ("SCOUT_GEMINI_TIMEOUT",), gemini, "timeout", DEFAULT_API_TIMEOUT)),
    )

    openai = llm_config.get("openai", {})
    config.openai = OpenAIConfig(
        api_key=_pick(env, ("SCOUT_OPENAI_API_KEY", "OPENAI_API_KEY"), openai, "api_key", ""),
        default_model=_pick(env, ("SCOUT_OPENAI_MODEL",), openai, "default_model", DEFAULT_MODELS["openai"]),
        embedding_model=_pick(
            env, ("SCOUT_OPENAI_EMBEDDING_MODEL",), openai, "embedding_model", DEFAULT_EMBEDDING_MODELS["openai"]
        ),
        base_url=_pick(env, ("SCOUT_OPENAI_BASE_URL",), openai, "base_url", ""),
        timeout=float(_pick(env, ("SCOUT_OPENAI_TIMEOUT",), openai, "timeout", DEFAULT_API_TIMEOUT)),
    )

    ollama = llm_config.get("ollama", {})
    config.ollama = OllamaConfig(
        base_url=_pick(env, ("SCOUT_OLLAMA_BASE_URL",), ollama, "base_url", "http://localhost:11434"),
        default_model=_pick(env, ("SCOUT_OLLAMA_MODEL",), ollama, "default_model", DEFAULT_MODELS["ollama"]),
        embedding_model=_pick(
            env, ("SCOUT_OLLAMA_EMBEDDING_MODEL",), ollama, "embedding_model", DEFAULT_EMBEDDING_MODELS["ollama"]
        ),
        timeout=float(_pick(env, ("SCOUT_OLLAMA_TIMEOUT",), ollama, "timeout", OLLAMA_TIMEOUT)),
    )

    hashing = llm_config.get("hash", {})
    config.hash = HashConfig(
        dimension=int(_pick(env, ("SCOUT_HASH_DIMENSION",), hashing, "dimension", DEFAULT_HASH_DIMENSION)),
    )

    return config


def _get_provider_type(value: str) -> ProviderType:
    """Normalize a provider name; unknown names fall back to "hash"."""
    value = value.lower().strip()
    if value in PROVIDER_TYPES:
        return cast(ProviderType, value)
    logger.warning("Unknown provider %r, using offline hash embeddings", value)
    return "hash"


def get_example_config() -> str:
    """Return example config.toml content with documented options."""
    return """# code-scout provider configuration
# Place this file at ~/.scout/config.toml

[llm]
# Available providers: "hash" (offline), "gemini", "openai", "ollama"
provider = "hash"

[llm.gemini]
# API key (or set SCOUT_GEMINI_API_KEY / GOOGLE_API_KEY env var)
api_key = ""
default_model = "gemini-2.0-flash"
embedding_model = "gemini-embedding-001"
timeout = 30.0

[llm.openai]
# API key (or set SCOUT_OPENAI_API_KEY / OPENAI_API_KEY env var)
api_key = ""
default_model = "gpt-4o-mini"
embedding_model = "text-embedding-3-small"
timeout = 30.0
# base_url = "https://your-resource.openai.azure.com/"

[llm.ollama]
base_url = "http://localhost:11434"
default_model = "llama3.2"
embedding_model = "nomic-embed-text"
timeout = 120.0

[llm.hash]
# Must match SCOUT_VECTOR_DIMENSION when using the chroma store
dimension = 1536
"""
