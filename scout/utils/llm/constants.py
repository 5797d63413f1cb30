"""Constants for the provider module.

Default models, timeouts and HTTP pool limits shared by every adapter.
"""

# =============================================================================
# Prompt Processing
# =============================================================================

# Maximum prompt length (chars) sent to a completion model.
MAX_PROMPT_LENGTH = 8000

# Maximum text length (chars) sent to an embedding model.
MAX_EMBED_INPUT_LENGTH = 8000

# =============================================================================
# Timeout Settings (seconds)
# =============================================================================

DEFAULT_API_TIMEOUT = 30.0

# Local models are slow on the first request while they load into memory.
OLLAMA_TIMEOUT = 120.0

# =============================================================================
# Default Models
# =============================================================================

DEFAULT_MODELS = {
    "gemini": "gemini-2.0-flash",
    "openai": "gpt-4o-mini",
    "ollama": "llama3.2",
}

DEFAULT_EMBEDDING_MODELS = {
    "gemini": "gemini-embedding-001",
    "openai": "text-embedding-3-small",
    "ollama": "nomic-embed-text",
}

# Dimension of the offline hash embedder; matches text-embedding-3-small.
DEFAULT_HASH_DIMENSION = 1536

# =============================================================================
# HTTP Client Settings
# =============================================================================

# Retrieval fans out one embedding request per search term.
HTTP_MAX_CONNECTIONS = 10

HTTP_KEEPALIVE_TIMEOUT = 30.0
