"""
Knowledge manager for contextkit.

Orchestrates ingestion (normalize, chunk, embed, persist) and retrieval
(normalize query, embed, vector and keyword search, post-process).
"""

import hashlib
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Union

from ...shared import (
    ContextKitError,
    EmbeddingProvider,
    StorageError,
    ValidationError,
    get_embedding_client,
    get_logger,
)
from .models import (
    KnowledgeConfig, KnowledgeFile, KnowledgeItem, KnowledgeMetadata, KnowledgeScope,
    KnowledgeSourceType, PostprocessingOptions, PreprocessingOptions, SearchParams, SearchType
)
from .processing import (
    ChunkConfig, FileLister, TextChunker, build_stop_words, load_knowledge_file, preprocess_text, walk_files
)
from .search import ResultPostProcessor
from .storage import InMemoryKnowledgeStore, KnowledgeStore


PARENT_PREVIEW_LENGTH = 1000
DEFAULT_LIST_LIMIT = 100


class KnowledgeManager:
    """
    Knowledge manager.

    Creates, retrieves, searches and removes knowledge items, and turns
    files into a parent item plus one item per chunk.
    """

    def __init__(self,
                 config: Optional[KnowledgeConfig] = None,
                 store: Optional[KnowledgeStore] = None,
                 embedding_provider: Optional[EmbeddingProvider] = None,
                 agent_id: Optional[str] = None):
        self.logger = get_logger(__name__)

        self.config = config or KnowledgeConfig()
        self.store = store or InMemoryKnowledgeStore()
        self.embedding_provider = embedding_provider or get_embedding_client()
        self.agent_id = agent_id

        self.stop_words = build_stop_words(self.config.stop_words)
        self.chunker = TextChunker(ChunkConfig(
            chunk_size=self.config.chunk_size,
            chunk_overlap=self.config.chunk_overlap
        ))
        self.postprocessor = ResultPostProcessor(stop_words=self.stop_words)

        self.logger.info(f"Knowledge Manager initialized (agent: {agent_id or 'none'})")

    # === Item Management ===

    async def create_knowledge(self, item: KnowledgeItem) -> KnowledgeItem:
        """
        Create a knowledge item.

        Assigns an ID when missing and embeds the normalized content when no
        embedding was supplied.

        Args:
            item: Item to store

        Returns:
            The stored item

        Raises:
            StorageError: If embedding or persistence fails
        """
        try:
            updates = {}
            if not item.id:
                updates['id'] = str(uuid.uuid4())
            if item.agent_id is None and self.agent_id:
                updates['agent_id'] = self.agent_id

            knowledge_item = item.model_copy(update=updates) if updates else item

            if knowledge_item.embedding is None:
                processed_content = preprocess_text(
                    knowledge_item.content,
                    self.config.preprocessing_options,
                    self.stop_words
                )
                embedding = await self.embedding_provider.generate_embedding(processed_content)
                knowledge_item = knowledge_item.model_copy(update={'embedding': list(embedding)})

            await self.store.create_knowledge_item(knowledge_item)

            self.logger.debug(
                f"Created knowledge item {knowledge_item.id} ({len(knowledge_item.content)} chars)"
            )
            return knowledge_item

        except StorageError as e:
            self.logger.error(f"Failed to create knowledge item: {e}")
            raise
        except Exception as e:
            self.logger.error(f"Failed to create knowledge item: {e}")
            raise StorageError(f"Failed to create knowledge item: {e}") from e

    async def get_knowledge(self,
                            item_id: Optional[str] = None,
                            query: Optional[str] = None,
                            agent_id: Optional[str] = None,
                            limit: Optional[int] = None) -> List[KnowledgeItem]:
        """
        Get knowledge by ID, by query, by agent, or from the global scope.

        The first given selector wins in that order. Failures return an
        empty list.
        """
        try:
            if item_id:
                item = await self.store.get_knowledge_by_id(item_id)
                return [item] if item else []

            if query:
                return await self.search_knowledge(SearchParams(
                    query=query,
                    max_results=limit or self.config.default_max_results,
                    agent_id=agent_id,
                    search_type=SearchType.HYBRID
                ))

            if agent_id:
                return await self.store.get_knowledge_by_agent_id(agent_id, limit or DEFAULT_LIST_LIMIT)

            return await self.store.get_knowledge_by_scope(KnowledgeScope.GLOBAL, limit or DEFAULT_LIST_LIMIT)

        except Exception as e:
            self.logger.error(f"Failed to get knowledge (id={item_id}, query={query}, agent={agent_id}): {e}")
            return []

    async def remove_knowledge(self, item_id: str, include_children: bool = True) -> bool:
        """
        Remove a knowledge item, and by default the chunks that point to it.

        Returns:
            True if the item existed

        Raises:
            StorageError: If deletion fails
        """
        try:
            deleted = await self.store.delete_knowledge_by_id(item_id)

            children = 0
            if include_children:
                children = await self.store.delete_knowledge_by_parent_id(item_id)

            self.logger.debug(f"Removed knowledge item {item_id} ({children} chunks)")
            return deleted

        except ContextKitError as e:
            self.logger.error(f"Failed to remove knowledge item {item_id}: {e}")
            raise
        except Exception as e:
            self.logger.error(f"Failed to remove knowledge item {item_id}: {e}")
            raise StorageError(f"Failed to remove knowledge item {item_id}: {e}") from e

    async def clear_knowledge(self,
                              agent_id: Optional[str] = None,
                              scope: Optional[KnowledgeScope] = None) -> int:
        """
        Clear knowledge for an agent and/or scope, or everything.

        Returns:
            Number of items deleted

        Raises:
            StorageError: If deletion fails
        """
        try:
            if agent_id and scope:
                count = await self.store.delete_knowledge_by_agent_and_scope(agent_id, scope)
                self.logger.info(f"Cleared {count} items for agent {agent_id} in scope {scope}")
            elif agent_id:
                count = await self.store.delete_knowledge_by_agent_id(agent_id)
                self.logger.info(f"Cleared {count} items for agent {agent_id}")
            elif scope:
                count = await self.store.delete_knowledge_by_scope(scope)
                self.logger.info(f"Cleared {count} items in scope {scope}")
            else:
                count = await self.store.delete_all_knowledge()
                self.logger.info(f"Cleared all knowledge ({count} items)")
            return count

        except ContextKitError as e:
            self.logger.error(f"Failed to clear knowledge (agent={agent_id}, scope={scope}): {e}")
            raise
        except Exception as e:
            self.logger.error(f"Failed to clear knowledge (agent={agent_id}, scope={scope}): {e}")
            raise StorageError(f"Failed to clear knowledge: {e}") from e

    # === Search ===

    async def search_knowledge(self, params: SearchParams) -> List[KnowledgeItem]:
        """
        Search knowledge with semantic, keyword or hybrid retrieval.

        Each mode over-fetches twice the requested results so that
        post-processing has room to rerank and deduplicate. In hybrid mode
        vector results come first and keyword results only add new IDs.

        Args:
            params: Search parameters

        Returns:
            Post-processed results, empty on failure
        """
        if not params.query or not params.query.strip():
            self.logger.warning("Empty search query, returning no results")
            return []

        try:
            processed_query = preprocess_text(
                params.query,
                params.preprocessing_options or self.config.preprocessing_options,
                self.stop_words
            )

            search_type = SearchType(params.search_type)
            max_results = params.max_results or self.config.default_max_results
            fetch_limit = max_results * 2
            min_similarity = params.min_similarity
            if min_similarity is None:
                min_similarity = self.config.default_min_similarity

            results: List[KnowledgeItem] = []

            if search_type in (SearchType.SEMANTIC, SearchType.HYBRID):
                results = await self._vector_search(processed_query, params, fetch_limit, min_similarity)

            if search_type in (SearchType.KEYWORD, SearchType.HYBRID):
                keyword_results = await self._keyword_search(processed_query, params, fetch_limit)

                if search_type == SearchType.HYBRID:
                    existing_ids = {item.id for item in results}
                    for item in keyword_results:
                        if item.id and item.id not in existing_ids:
                            existing_ids.add(item.id)
                            results.append(item)
                else:
                    results = keyword_results

            return self.postprocessor.process(
                results,
                params.query,
                self._postprocessing_options(params)
            )

        except Exception as e:
            self.logger.error(f"Failed to search knowledge for '{params.query}': {e}")
            return []

    async def _vector_search(self,
                             processed_query: str,
                             params: SearchParams,
                             limit: int,
                             min_similarity: float) -> List[KnowledgeItem]:
        try:
            query_embedding = await self.embedding_provider.generate_embedding(processed_query)
            return await self.store.search_by_embedding(
                query_embedding,
                scope=params.scope,
                agent_id=params.agent_id,
                limit=limit,
                min_similarity=min_similarity
            )
        except Exception as e:
            self.logger.error(f"Vector search failed: {e}")
            return []

    async def _keyword_search(self,
                              processed_query: str,
                              params: SearchParams,
                              limit: int) -> List[KnowledgeItem]:
        try:
            return await self.store.search_by_keywords(
                processed_query,
                scope=params.scope,
                agent_id=params.agent_id,
                limit=limit
            )
        except Exception as e:
            self.logger.error(f"Keyword search failed: {e}")
            return []

    def _postprocessing_options(self, params: SearchParams) -> PostprocessingOptions:
        if params.postprocessing_options is not None:
            return params.postprocessing_options

        options = self.config.postprocessing_options
        if params.max_results:
            options = options.model_copy(update={'max_results': params.max_results})
        return options

    # === File Ingestion ===

    async def process_file(self, file: KnowledgeFile) -> Optional[KnowledgeItem]:
        """
        Ingest a file as a parent item plus one item per chunk.

        Unchanged files are skipped; changed files replace their previous
        items.

        Args:
            file: File to ingest

        Returns:
            The parent item, or None when the file was skipped
        """
        if not file.content or not file.content.strip():
            self.logger.warning(f"Skipping empty file: {file.path}")
            return None

        file_id = self.generate_scoped_id(file.path, file.is_shared)
        content_hash = hashlib.sha256(file.content.encode('utf-8')).hexdigest()

        try:
            existing = await self.store.get_knowledge_by_id(file_id)
            if existing is not None:
                if getattr(existing.metadata, 'content_hash', None) == content_hash:
                    self.logger.debug(f"File already processed and unchanged: {file.path}")
                    return None

                await self.remove_knowledge(file_id)

            processed_content = preprocess_text(
                file.content,
                self._preprocessing_for(file.type),
                self.stop_words
            )
            chunks = self.chunker.chunk(processed_content, file.path)

            scope = KnowledgeScope.GLOBAL if file.is_shared else KnowledgeScope.AGENT
            preview = file.content[:PARENT_PREVIEW_LENGTH]
            if len(file.content) > PARENT_PREVIEW_LENGTH:
                preview += '...'

            parent = await self.create_knowledge(KnowledgeItem(
                id=file_id,
                content=preview,
                metadata=KnowledgeMetadata(
                    source=file.path,
                    source_type=file.type,
                    is_parent=True,
                    total_chunks=len(chunks),
                    content_hash=content_hash
                ),
                scope=scope
            ))

            for index, chunk in enumerate(chunks):
                await self.create_knowledge(KnowledgeItem(
                    id=f"{file_id}-chunk-{index}",
                    content=chunk,
                    metadata=KnowledgeMetadata(
                        source=file.path,
                        source_type=file.type,
                        chunk_index=index,
                        total_chunks=len(chunks),
                        parent_id=file_id
                    ),
                    scope=scope
                ))

            self.logger.info(f"Processed file {file.path} into {len(chunks)} knowledge chunks")
            return parent

        except Exception as e:
            self.logger.error(f"Failed to process file {file.path}: {e}")
            raise

    async def process_directory(self,
                                root: Optional[Union[str, Path]] = None,
                                is_shared: bool = False,
                                lister: FileLister = walk_files) -> Dict[str, int]:
        """
        Ingest every file a lister yields under a directory.

        Failures on single files are logged and counted. Binary files with
        no text extractor are skipped with a warning.

        Args:
            root: Directory to scan, defaults to the configured knowledge root
            is_shared: Ingest the files as shared (global scope)
            lister: Callable producing the file paths to ingest

        Returns:
            Counts of processed, skipped and failed files
        """
        root = Path(root or self.config.knowledge_root)
        summary = {'processed': 0, 'skipped': 0, 'failed': 0}

        if not root.is_dir():
            self.logger.warning(f"Knowledge directory not found: {root}")
            return summary

        for path in lister(root):
            try:
                file = load_knowledge_file(path, is_shared=is_shared)
            except ValidationError as e:
                self.logger.warning(f"Skipping {path}: {e}")
                summary['skipped'] += 1
                continue
            except Exception as e:
                self.logger.error(f"Failed to ingest {path}: {e}")
                summary['failed'] += 1
                continue

            try:
                parent = await self.process_file(file)
            except Exception as e:
                self.logger.error(f"Failed to ingest {path}: {e}")
                summary['failed'] += 1
                continue

            summary['processed' if parent is not None else 'skipped'] += 1

        self.logger.info(
            f"Processed directory {root}: {summary['processed']} processed, "
            f"{summary['skipped']} skipped, {summary['failed']} failed"
        )
        return summary

    def generate_scoped_id(self, file_path: str, is_shared: bool) -> str:
        """Deterministic item ID for a file path within its sharing scope."""
        normalized_path = file_path.replace('\\', '/')
        prefix = 'shared:' if is_shared else 'private:'
        return str(uuid.uuid5(uuid.NAMESPACE_URL, prefix + normalized_path))

    def _preprocessing_for(self, source_type: KnowledgeSourceType) -> PreprocessingOptions:
        options = self.config.preprocessing_options

        if source_type == KnowledgeSourceType.MARKDOWN:
            return options.model_copy(update={'remove_markdown': True})
        if source_type == KnowledgeSourceType.CODE:
            # Markdown stripping would also drop fenced and inline code
            return options.model_copy(update={'remove_code': False, 'remove_markdown': False})
        return options
