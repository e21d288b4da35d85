"""
Base knowledge storage interface.

Defines the abstract interface for knowledge persistence backends
supporting embedding similarity search and keyword search.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..models import KnowledgeItem, KnowledgeScope


class KnowledgeStore(ABC):
    """
    Abstract base class for knowledge storage backends.

    Search methods return item copies whose ``metadata.relevance_score``
    carries the match score.
    """

    @abstractmethod
    async def create_knowledge_item(self, item: KnowledgeItem) -> None:
        """
        Persist a knowledge item, replacing any item with the same ID.

        Args:
            item: Item with an ID assigned
        """
        pass

    @abstractmethod
    async def get_knowledge_by_id(self, item_id: str) -> Optional[KnowledgeItem]:
        """
        Retrieve an item by ID.

        Returns:
            KnowledgeItem if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_knowledge_by_agent_id(self, agent_id: str, limit: int = 100) -> List[KnowledgeItem]:
        """Retrieve up to ``limit`` items owned by an agent."""
        pass

    @abstractmethod
    async def get_knowledge_by_scope(self, scope: KnowledgeScope, limit: int = 100) -> List[KnowledgeItem]:
        """Retrieve up to ``limit`` items in a scope."""
        pass

    @abstractmethod
    async def search_by_embedding(self,
                                  embedding: Sequence[float],
                                  scope: Optional[KnowledgeScope] = None,
                                  agent_id: Optional[str] = None,
                                  limit: int = 10,
                                  min_similarity: float = 0.0) -> List[KnowledgeItem]:
        """
        Perform similarity search using a query embedding.

        Args:
            embedding: Query vector
            scope: Restrict to a scope
            agent_id: Restrict to an agent's items plus global items
            limit: Number of results to return
            min_similarity: Minimum similarity score

        Returns:
            Items sorted by similarity, highest first
        """
        pass

    @abstractmethod
    async def search_by_keywords(self,
                                 query: str,
                                 scope: Optional[KnowledgeScope] = None,
                                 agent_id: Optional[str] = None,
                                 limit: int = 10) -> List[KnowledgeItem]:
        """
        Perform keyword search over item content.

        Returns:
            Items sorted by keyword score, highest first
        """
        pass

    @abstractmethod
    async def delete_knowledge_by_id(self, item_id: str) -> bool:
        """
        Delete an item.

        Returns:
            True if an item was deleted
        """
        pass

    @abstractmethod
    async def delete_knowledge_by_parent_id(self, parent_id: str) -> int:
        """Delete every chunk of a parent document. Returns the count deleted."""
        pass

    @abstractmethod
    async def delete_knowledge_by_agent_id(self, agent_id: str) -> int:
        """Delete every item owned by an agent. Returns the count deleted."""
        pass

    @abstractmethod
    async def delete_knowledge_by_scope(self, scope: KnowledgeScope) -> int:
        """Delete every item in a scope. Returns the count deleted."""
        pass

    @abstractmethod
    async def delete_knowledge_by_agent_and_scope(self, agent_id: str, scope: KnowledgeScope) -> int:
        """Delete an agent's items in a scope. Returns the count deleted."""
        pass

    @abstractmethod
    async def delete_all_knowledge(self) -> int:
        """Delete everything. Returns the count deleted."""
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the store.

        Returns:
            Dictionary with store statistics
        """
        pass

    # Helper methods that can be overridden

    def calculate_similarity(self, embedding1: np.ndarray, embedding2: np.ndarray) -> float:
        """
        Calculate cosine similarity between two embeddings.

        Negative similarities are clipped to 0.

        Returns:
            Cosine similarity score (0-1)
        """
        if embedding1 is None or embedding2 is None:
            return 0.0

        if embedding1.shape != embedding2.shape:
            return 0.0

        norm1 = np.linalg.norm(embedding1)
        norm2 = np.linalg.norm(embedding2)

        if norm1 == 0 or norm2 == 0:
            return 0.0

        similarity = float(np.dot(embedding1, embedding2) / (norm1 * norm2))
        return max(0.0, min(1.0, similarity))

    def keyword_score(self, query: str, content: str) -> float:
        """
        Fraction of distinct query terms that occur in the content.

        Returns:
            Score in [0, 1]
        """
        terms = set(query.lower().split())
        if not terms or not content:
            return 0.0

        content_lower = content.lower()
        matched = sum(1 for term in terms if term in content_lower)
        return matched / len(terms)
