"""
Knowledge storage backends.
"""

from .base import KnowledgeStore
from .memory_store import InMemoryKnowledgeStore

__all__ = [
    'KnowledgeStore',
    'InMemoryKnowledgeStore',
]
