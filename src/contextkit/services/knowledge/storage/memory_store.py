"""
In-memory knowledge storage.

Provides a simple in-memory store for development and testing.
Uses numpy for similarity calculations.
"""

import threading
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from ....shared import SearchError, ValidationError, get_logger
from ..models import KnowledgeItem, KnowledgeScope
from .base import KnowledgeStore


class InMemoryKnowledgeStore(KnowledgeStore):
    """
    In-memory knowledge store implementation.

    Keeps items and their embeddings in dictionaries guarded by a
    re-entrant lock.
    """

    def __init__(self):
        self.logger = get_logger(__name__)
        self._lock = threading.RLock()

        self._items: Dict[str, KnowledgeItem] = {}
        self._embeddings: Dict[str, np.ndarray] = {}

    async def create_knowledge_item(self, item: KnowledgeItem) -> None:
        if not item.id:
            raise ValidationError("Knowledge item must have an ID before it is stored")

        with self._lock:
            self._items[item.id] = item.model_copy(deep=True)

            if item.embedding is not None:
                self._embeddings[item.id] = np.asarray(item.embedding, dtype=np.float32)
            else:
                self._embeddings.pop(item.id, None)

            self.logger.debug(f"Stored knowledge item: {item.id}")

    async def get_knowledge_by_id(self, item_id: str) -> Optional[KnowledgeItem]:
        with self._lock:
            item = self._items.get(item_id)
            return item.model_copy(deep=True) if item else None

    async def get_knowledge_by_agent_id(self, agent_id: str, limit: int = 100) -> List[KnowledgeItem]:
        return self._select(lambda item: item.agent_id == agent_id, limit)

    async def get_knowledge_by_scope(self, scope: KnowledgeScope, limit: int = 100) -> List[KnowledgeItem]:
        return self._select(lambda item: item.scope == scope, limit)

    async def search_by_embedding(self,
                                  embedding: Sequence[float],
                                  scope: Optional[KnowledgeScope] = None,
                                  agent_id: Optional[str] = None,
                                  limit: int = 10,
                                  min_similarity: float = 0.0) -> List[KnowledgeItem]:
        if embedding is None:
            return []

        query_embedding = np.asarray(embedding, dtype=np.float32)
        if query_embedding.ndim != 1 or query_embedding.size == 0:
            raise SearchError(f"Query embedding must be a non-empty vector, got shape {query_embedding.shape}")

        with self._lock:
            results = []

            for item_id, item in self._items.items():
                # Skip items without embeddings
                if item_id not in self._embeddings:
                    continue

                if not self._matches(item, scope, agent_id):
                    continue

                similarity = self.calculate_similarity(query_embedding, self._embeddings[item_id])
                if similarity >= min_similarity:
                    results.append((item, similarity))

        results.sort(key=lambda x: x[1], reverse=True)
        return [item.with_score(score) for item, score in results[:limit]]

    async def search_by_keywords(self,
                                 query: str,
                                 scope: Optional[KnowledgeScope] = None,
                                 agent_id: Optional[str] = None,
                                 limit: int = 10) -> List[KnowledgeItem]:
        if not query or not query.strip():
            return []

        with self._lock:
            results = []

            for item in self._items.values():
                if not self._matches(item, scope, agent_id):
                    continue

                score = self.keyword_score(query, item.content)
                if score > 0:
                    results.append((item, score))

        results.sort(key=lambda x: x[1], reverse=True)
        return [item.with_score(score) for item, score in results[:limit]]

    async def delete_knowledge_by_id(self, item_id: str) -> bool:
        with self._lock:
            if item_id not in self._items:
                return False

            del self._items[item_id]
            self._embeddings.pop(item_id, None)

            self.logger.debug(f"Deleted knowledge item: {item_id}")
            return True

    async def delete_knowledge_by_parent_id(self, parent_id: str) -> int:
        return self._delete_where(lambda item: item.metadata.parent_id == parent_id)

    async def delete_knowledge_by_agent_id(self, agent_id: str) -> int:
        return self._delete_where(lambda item: item.agent_id == agent_id)

    async def delete_knowledge_by_scope(self, scope: KnowledgeScope) -> int:
        return self._delete_where(lambda item: item.scope == scope)

    async def delete_knowledge_by_agent_and_scope(self, agent_id: str, scope: KnowledgeScope) -> int:
        return self._delete_where(lambda item: item.agent_id == agent_id and item.scope == scope)

    async def delete_all_knowledge(self) -> int:
        with self._lock:
            count = len(self._items)
            self._items.clear()
            self._embeddings.clear()

            self.logger.info(f"Cleared all {count} items from InMemoryKnowledgeStore")
            return count

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the store."""
        with self._lock:
            total_items = len(self._items)
            parents = sum(1 for item in self._items.values() if item.metadata.is_parent)
            chunks = sum(1 for item in self._items.values() if item.is_chunk)

            scopes: Dict[str, int] = {}
            for item in self._items.values():
                scopes[item.scope] = scopes.get(item.scope, 0) + 1

            embedding_dim = None
            if self._embeddings:
                embedding_dim = len(next(iter(self._embeddings.values())))

            return {
                'backend': 'memory',
                'total_items': total_items,
                'items_with_embeddings': len(self._embeddings),
                'parent_documents': parents,
                'chunks': chunks,
                'items_by_scope': scopes,
                'embedding_dimensions': embedding_dim,
            }

    def _select(self, predicate: Callable[[KnowledgeItem], bool], limit: int) -> List[KnowledgeItem]:
        with self._lock:
            selected = [item for item in self._items.values() if predicate(item)]
            return [item.model_copy(deep=True) for item in selected[:limit]]

    def _delete_where(self, predicate: Callable[[KnowledgeItem], bool]) -> int:
        with self._lock:
            doomed = [item_id for item_id, item in self._items.items() if predicate(item)]
            for item_id in doomed:
                del self._items[item_id]
                self._embeddings.pop(item_id, None)

            self.logger.debug(f"Deleted {len(doomed)} knowledge items")
            return len(doomed)

    @staticmethod
    def _matches(item: KnowledgeItem, scope: Optional[KnowledgeScope], agent_id: Optional[str]) -> bool:
        """Scope filter is exact; agent filter also admits global items."""
        if scope is not None and item.scope != scope:
            return False

        if agent_id is not None and item.agent_id != agent_id and item.scope != KnowledgeScope.GLOBAL:
            return False

        return True
