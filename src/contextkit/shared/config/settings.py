"""
Centralized configuration management for contextkit.

All environment variables and settings are managed here so the knowledge
pipeline and the context builder read the same defaults.
"""

from functools import lru_cache
from typing import Dict, Any
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Centralized settings for contextkit.

    Values come from CONTEXTKIT_-prefixed environment variables or a .env
    file. The grouped *_config views feed the component factories.
    """

    # === Application Settings ===
    app_name: str = Field(default="contextkit", description="Application name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="", description="Optional log file path")

    # === Embedding Settings ===
    embedding_model_name: str = Field(default="all-MiniLM-L6-v2", description="Sentence transformer model")
    embedding_cache_size: int = Field(default=1000, description="Embedding cache size")
    embedding_batch_size: int = Field(default=32, description="Embedding batch size")
    embedding_dimensions: int = Field(default=384, description="Dimensions for the hashing embedding provider")

    # === Knowledge Settings ===
    chunk_size: int = Field(default=1000, gt=0, description="Target chunk size in characters")
    chunk_overlap: int = Field(default=200, ge=0, description="Overlap between chunks in characters")
    default_min_similarity: float = Field(default=0.75, ge=0.0, le=1.0, description="Minimum vector similarity")
    default_max_results: int = Field(default=5, gt=0, description="Default number of search results")
    knowledge_root: str = Field(default="./knowledge", description="Root directory for knowledge files")

    # === Context Builder Settings ===
    context_max_tokens: int = Field(default=8000, gt=0, description="Default token budget for assembled context")
    context_source_timeout: float = Field(default=10.0, gt=0, description="Per-source fetch timeout in seconds")
    default_system_message: str = Field(
        default="You are a helpful AI assistant.",
        description="System message used when building context for a user or agent"
    )

    # === Logging Configuration ===
    @property
    def logging_config(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return {
            'level': self.log_level,
            'file': self.log_file or None,
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        }

    # === Embedding Configuration ===
    @property
    def embedding_config(self) -> Dict[str, Any]:
        """Get embedding configuration."""
        return {
            'model': self.embedding_model_name,
            'cache_size': self.embedding_cache_size,
            'batch_size': self.embedding_batch_size,
            'dimensions': self.embedding_dimensions,
        }

    # === Knowledge Configuration ===
    @property
    def knowledge_config(self) -> Dict[str, Any]:
        """Get knowledge manager configuration."""
        return {
            'chunk_size': self.chunk_size,
            'chunk_overlap': self.chunk_overlap,
            'default_min_similarity': self.default_min_similarity,
            'default_max_results': self.default_max_results,
            'knowledge_root': self.knowledge_root,
        }

    # === Context Configuration ===
    @property
    def context_config(self) -> Dict[str, Any]:
        """Get context builder configuration."""
        return {
            'max_tokens': self.context_max_tokens,
            'source_timeout': self.context_source_timeout,
            'system_message': self.default_system_message,
        }

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @model_validator(mode='after')
    def validate_chunk_overlap(self):
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        return self

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "CONTEXTKIT_",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide settings, read from the environment once.

    Call ``get_settings.cache_clear()`` to pick up changed variables.
    """
    return Settings()
