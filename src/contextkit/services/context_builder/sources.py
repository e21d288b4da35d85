"""
Context source fetchers.

A fetcher is an async callable ``(source, query, options) -> list[ContextItem]``
registered on the context builder for one source type.
"""

from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from ...shared import get_logger, get_settings
from ..knowledge import KnowledgeManager, SearchParams
from .models import ContextBuildOptions, ContextItem, ContextSourceConfig, ContextSourceType
from .utils import estimate_token_count


ContextFetcher = Callable[[ContextSourceConfig, str, ContextBuildOptions], Awaitable[List[ContextItem]]]
SourceRecord = Union[str, Dict[str, Any]]


class KnowledgeSourceFetcher:
    """Turns knowledge search results into context items."""

    def __init__(self,
                 knowledge_manager: KnowledgeManager,
                 default_max_results: int = 5,
                 default_min_similarity: float = 0.75):
        self.logger = get_logger(__name__)
        self.knowledge_manager = knowledge_manager
        self.default_max_results = default_max_results
        self.default_min_similarity = default_min_similarity

    async def __call__(self,
                       source: ContextSourceConfig,
                       query: str,
                       options: ContextBuildOptions) -> List[ContextItem]:
        search_query = source.query or query
        if not search_query:
            return []

        params = SearchParams(
            query=search_query,
            agent_id=options.agent_id,
            max_results=source.params.get('max_results', self.default_max_results),
            min_similarity=source.params.get('min_similarity', self.default_min_similarity)
        )
        results = await self.knowledge_manager.search_knowledge(params)

        items = []
        for result in results:
            metadata = result.metadata.model_dump(mode='json', exclude_none=True)
            metadata['id'] = result.id
            items.append(ContextItem(
                source_type=ContextSourceType.KNOWLEDGE,
                content=result.content,
                token_count=estimate_token_count(result.content),
                relevance_score=result.relevance_score,
                metadata=metadata
            ))

        self.logger.debug(f"Knowledge source produced {len(items)} items for '{search_query}'")
        return items


class SystemSourceFetcher:
    """Emits the system instructions as a single fully relevant item."""

    def __init__(self, default_instructions: Optional[str] = None):
        self.default_instructions = default_instructions or get_settings().default_system_message

    async def __call__(self,
                       source: ContextSourceConfig,
                       query: str,
                       options: ContextBuildOptions) -> List[ContextItem]:
        instructions = source.params.get('instructions') or self.default_instructions
        return [ContextItem(
            source_type=ContextSourceType.SYSTEM,
            content=instructions,
            token_count=estimate_token_count(instructions),
            relevance_score=1.0
        )]


class StaticSourceFetcher:
    """Serves a fixed list of texts, such as profile facts or current state."""

    def __init__(self, contents: Iterable[str], relevance_score: Optional[float] = None):
        self.contents = [content for content in contents if content]
        self.relevance_score = relevance_score

    async def __call__(self,
                       source: ContextSourceConfig,
                       query: str,
                       options: ContextBuildOptions) -> List[ContextItem]:
        return [
            ContextItem(
                source_type=source.type,
                content=content,
                token_count=estimate_token_count(content),
                relevance_score=self.relevance_score
            )
            for content in self.contents
        ]


class CallableSourceFetcher:
    """
    Adapts a collaborator coroutine into a fetcher.

    The coroutine is called with ``(query, options)`` and returns strings or
    dicts with a ``content`` key and optional ``relevance_score``,
    ``token_count`` and ``metadata`` keys.
    """

    def __init__(self, func: Callable[[str, ContextBuildOptions], Awaitable[Iterable[SourceRecord]]]):
        self.func = func

    async def __call__(self,
                       source: ContextSourceConfig,
                       query: str,
                       options: ContextBuildOptions) -> List[ContextItem]:
        records = await self.func(source.query or query, options)
        return [self._to_item(source, record) for record in records or []]

    @staticmethod
    def _to_item(source: ContextSourceConfig, record: SourceRecord) -> ContextItem:
        if isinstance(record, str):
            return ContextItem(
                source_type=source.type,
                content=record,
                token_count=estimate_token_count(record)
            )

        content = record['content']
        token_count = record.get('token_count')
        return ContextItem(
            source_type=source.type,
            content=content,
            token_count=token_count if token_count is not None else estimate_token_count(content),
            relevance_score=record.get('relevance_score'),
            metadata=record.get('metadata') or {}
        )
