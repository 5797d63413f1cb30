"""Environment and settings (Pydantic Settings)."""

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Default data directory: ~/.scout/data/
_data_dir = Path.home() / ".scout" / "data"


class Settings(BaseSettings):
    """Settings loaded from SCOUT_* environment variables and .env.

    Provider credentials live in ~/.scout/config.toml and are read by the
    provider module.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCOUT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Store
    store_provider: Literal["memory", "chroma"] = "memory"
    collection_name: str = "code_scout"
    similarity_metric: Literal["cosine", "euclidean", "dot"] = "cosine"
    chroma_path: Path = _data_dir / "chroma"
    # Must match the embedding model's output size for the chroma store
    vector_dimension: int = Field(1536, gt=0)

    # Indexing
    chunk_size: int = Field(1000, gt=0)
    chunk_overlap: int = Field(100, ge=0)

    # Retrieval
    max_sources: int = Field(5, ge=0)
    max_expansion_terms: int = Field(3, ge=0)
    embed_timeout: float = Field(10.0, gt=0)
    lexical_weight: float = Field(0.3, ge=0)
    vector_weight: float = Field(0.7, ge=0)
    dedup_strategy: Literal["first_seen", "highest_score"] = "first_seen"

    # Feature flags
    enable_ai: bool = True

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_file: Path = _data_dir / "scout.log"

    @model_validator(mode="after")
    def _check_consistency(self) -> "Settings":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        if self.lexical_weight + self.vector_weight <= 0:
            raise ValueError("lexical_weight and vector_weight cannot both be zero")
        return self


def get_settings() -> Settings:
    """Return freshly loaded settings."""
    return Settings()
