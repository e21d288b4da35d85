"""
Shared infrastructure components for contextkit.

Provides centralized infrastructure services including:
- Embedding providers with caching
- Logging configuration
"""

from .ai.embedding_client import EmbeddingProvider, EmbeddingClient, get_embedding_client
from .ai.hashing_provider import HashingEmbeddingProvider
from .monitoring.logger import get_logger, setup_logging

__all__ = [
    # AI Services
    "EmbeddingProvider",
    "EmbeddingClient",
    "get_embedding_client",
    "HashingEmbeddingProvider",

    # Monitoring
    "get_logger",
    "setup_logging",
]
