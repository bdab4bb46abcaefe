"""
Configuration management using Pydantic Settings.
Loads from environment variables with sensible defaults for development.
"""

from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # API Keys
    openai_api_key: str = ""

    # Embedding settings
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_batch_size: int = 100

    # Parent-child chunking settings (characters)
    parent_chunk_size: int = 1000
    parent_chunk_overlap: int = 200

    # Plain chunking settings (legacy single-tier path)
    chunk_size: int = 1000  # characters
    chunk_overlap: int = 200  # characters

    # Search funnel settings
    default_top_k: int = 20  # Parent passages returned by search
    candidate_pool_size: int = 100  # Child hits kept before document aggregation
    max_documents: int = 5  # Documents allowed through aggregation

    # Diversity settings
    mmr_lambda: float = 0.7  # Balance relevance (1.0) vs diversity (0.0)
    span_weight: float = 0.1  # Base penalty for reusing a document section

    # Entity index settings
    entity_min_count: int = 2
    entity_max_results: int = 50

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
