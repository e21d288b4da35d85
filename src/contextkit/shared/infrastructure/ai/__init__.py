"""
AI infrastructure for contextkit.
"""

from .embedding_client import EmbeddingProvider, EmbeddingClient, get_embedding_client
from .hashing_provider import HashingEmbeddingProvider

__all__ = [
    "EmbeddingProvider",
    "EmbeddingClient",
    "get_embedding_client",
    "HashingEmbeddingProvider",
]
