"""
Knowledge service for contextkit.

Provides document ingestion, retrieval and result post-processing for
retrieval-augmented context assembly.
"""

from .service import KnowledgeManager
from .factory import create_knowledge_manager, create_agent_knowledge_manager
from .models import (
    KnowledgeConfig, KnowledgeFile, KnowledgeItem, KnowledgeMetadata, KnowledgeScope,
    KnowledgeSourceType, PostprocessingOptions, PreprocessingOptions, SearchParams, SearchType
)
from .storage import KnowledgeStore, InMemoryKnowledgeStore

__all__ = [
    'KnowledgeManager',
    'create_knowledge_manager',
    'create_agent_knowledge_manager',
    'KnowledgeConfig',
    'KnowledgeFile',
    'KnowledgeItem',
    'KnowledgeMetadata',
    'KnowledgeScope',
    'KnowledgeSourceType',
    'PostprocessingOptions',
    'PreprocessingOptions',
    'SearchParams',
    'SearchType',
    'KnowledgeStore',
    'InMemoryKnowledgeStore',
]
