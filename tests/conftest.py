"""
Shared fixtures for the contextkit test suite.

Everything runs offline: embeddings come from the hashing provider and
storage is in memory.
"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from contextkit.shared import HashingEmbeddingProvider
from contextkit.services.knowledge import (
    InMemoryKnowledgeStore,
    KnowledgeConfig,
    KnowledgeItem,
    KnowledgeManager,
    KnowledgeMetadata,
    PostprocessingOptions,
)


@pytest.fixture
def embedding_provider():
    return HashingEmbeddingProvider(dimensions=256)


@pytest.fixture
def store():
    return InMemoryKnowledgeStore()


@pytest.fixture
def knowledge_config():
    """Small chunks and no score floors, so hashed embeddings are easy to reason about."""
    return KnowledgeConfig(
        chunk_size=200,
        chunk_overlap=40,
        default_min_similarity=0.0,
        postprocessing_options=PostprocessingOptions(min_relevance_score=0.0),
    )


@pytest.fixture
def manager(knowledge_config, store, embedding_provider):
    return KnowledgeManager(config=knowledge_config, store=store, embedding_provider=embedding_provider)


@pytest.fixture
def make_item():
    """Factory for knowledge items with an optional relevance score."""
    counter = {'n': 0}

    def _make(content, score=None, item_id=None, **kwargs):
        counter['n'] += 1
        return KnowledgeItem(
            id=item_id or f"item-{counter['n']}",
            content=content,
            metadata=KnowledgeMetadata(relevance_score=score),
            **kwargs
        )

    return _make
