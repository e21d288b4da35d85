"""
Context builder for contextkit.

Fans out to prioritized context sources, merges and ranks their items and
selects what fits into a fixed token budget.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple, TypeVar, Union

from ...shared import ConfigurationError, Settings, get_logger, get_settings
from .models import AssembledContext, ContextBuildOptions, ContextItem, ContextSourceConfig, ContextSourceType
from .sources import ContextFetcher, SystemSourceFetcher
from .utils import content_hash, estimate_token_count


@dataclass
class _Candidate:
    """A context item tagged with the source it came from."""
    item: ContextItem
    priority: int
    source_index: int

    @property
    def content(self) -> str:
        return self.item.content

    @property
    def tokens(self) -> int:
        return self.item.token_count or 0


T = TypeVar('T')


class ContextBuilder:
    """
    Assembles bounded, relevance-ranked context from several sources.

    Sources are fetched concurrently, each under its own timeout. A failing
    or slow source contributes nothing instead of failing the build.
    """

    def __init__(self,
                 fetchers: Optional[Dict[Union[ContextSourceType, str], ContextFetcher]] = None,
                 settings: Optional[Settings] = None):
        self.logger = get_logger(__name__)

        config = (settings or get_settings()).context_config
        self.default_max_tokens = config['max_tokens']
        self.source_timeout = config['source_timeout']
        self.system_message = config['system_message']

        self._fetchers: Dict[str, ContextFetcher] = {}
        self.register_fetcher(ContextSourceType.SYSTEM, SystemSourceFetcher(self.system_message))
        for source_type, fetcher in (fetchers or {}).items():
            self.register_fetcher(source_type, fetcher)

        self.logger.info(f"Context Builder initialized with sources: {sorted(self._fetchers)}")

    def register_fetcher(self, source_type: Union[ContextSourceType, str], fetcher: ContextFetcher) -> None:
        """Add or replace the fetcher for a source type."""
        try:
            key = ContextSourceType(source_type).value
        except ValueError as e:
            raise ConfigurationError(f"Unknown context source type: {source_type}") from e

        self._fetchers[key] = fetcher
        self.logger.debug(f"Registered fetcher for source: {key}")

    def get_default_sources(self) -> List[ContextSourceConfig]:
        """Default source ordering: conversation and system are required."""
        return [
            ContextSourceConfig(type=ContextSourceType.CONVERSATION, priority=100, required=True),
            ContextSourceConfig(type=ContextSourceType.GOALS, priority=90),
            ContextSourceConfig(type=ContextSourceType.MEMORY, priority=80),
            ContextSourceConfig(type=ContextSourceType.KNOWLEDGE, priority=70),
            ContextSourceConfig(type=ContextSourceType.USER_PROFILE, priority=60),
            ContextSourceConfig(type=ContextSourceType.SYSTEM, priority=50, required=True),
        ]

    async def build_context(self, query: str, options: Optional[ContextBuildOptions] = None) -> AssembledContext:
        """
        Build context for a query.

        Args:
            query: User query the context is built for
            options: Build options, defaults to ``ContextBuildOptions()``

        Returns:
            Assembled context; empty if the build fails unexpectedly
        """
        opts = options or ContextBuildOptions()
        max_tokens = opts.max_tokens or self.default_max_tokens

        try:
            sources = opts.sources if opts.sources is not None else self.get_default_sources()
            sorted_sources = sorted(sources, key=lambda s: s.priority, reverse=True)

            fetched = await asyncio.gather(*(
                self._fetch_source(source, query, opts) for source in sorted_sources
            ))

            candidates: List[_Candidate] = []
            capped = False
            for index, (source, items) in enumerate(zip(sorted_sources, fetched)):
                items = [self._with_token_count(item) for item in items]
                items, was_capped = self._apply_source_cap(source, items)
                capped = capped or was_capped
                candidates.extend(_Candidate(item, source.priority, index) for item in items)

            candidates.sort(key=lambda c: self._rank_key(c, opts.prioritize_recent))

            if opts.deduplicate:
                candidates = self.deduplicate_items(candidates)

            selected, remaining, truncated = self._allocate(candidates, sorted_sources, max_tokens)

            context = AssembledContext(
                items=[candidate.item for candidate in selected],
                total_tokens=max_tokens - remaining,
                truncated=truncated or capped
            )

            if opts.user_id or opts.agent_id:
                context.system = self._system_message(opts)

            self.logger.info(
                f"Built context with {len(context.items)} items, "
                f"{context.total_tokens}/{max_tokens} tokens (truncated: {context.truncated})"
            )
            return context

        except Exception as e:
            self.logger.error(f"Error building context: {e}")
            return AssembledContext()

    def deduplicate_items(self, items: Sequence[T]) -> List[T]:
        """Keep the first of any items whose content hashes collide."""
        result = []
        seen = set()

        for item in items:
            key = content_hash(item.content)
            if key not in seen:
                seen.add(key)
                result.append(item)

        return result

    async def _fetch_source(self,
                            source: ContextSourceConfig,
                            query: str,
                            options: ContextBuildOptions) -> List[ContextItem]:
        source_type = ContextSourceType(source.type).value
        fetcher = self._fetchers.get(source_type)
        if fetcher is None:
            self.logger.debug(f"No fetcher registered for source: {source_type}")
            return []

        timeout = source.params.get('timeout', self.source_timeout)

        try:
            items = await asyncio.wait_for(fetcher(source, query, options), timeout=timeout)
            return list(items or [])
        except asyncio.TimeoutError:
            self.logger.warning(f"Source {source_type} timed out after {timeout}s")
            return []
        except Exception as e:
            self.logger.error(f"Error getting items from {source_type}: {e}")
            return []

    def _allocate(self,
                  candidates: List[_Candidate],
                  sources: List[ContextSourceConfig],
                  max_tokens: int) -> Tuple[List[_Candidate], int, bool]:
        remaining = max_tokens
        selected: List[_Candidate] = []
        truncated = False
        pool = list(candidates)

        # Required sources get their best fitting item first
        for index, source in enumerate(sources):
            if not source.required:
                continue

            source_items = [c for c in pool if c.source_index == index]
            fitting = next((c for c in source_items if c.tokens <= remaining), None)

            if fitting is not None:
                selected.append(fitting)
                remaining -= fitting.tokens
                pool.remove(fitting)
            elif source_items:
                self.logger.debug(f"Required source {source.type} has no item within {remaining} tokens")
                truncated = True

        for candidate in pool:
            if remaining <= 0:
                truncated = True
                break

            if candidate.tokens <= remaining:
                selected.append(candidate)
                remaining -= candidate.tokens
            else:
                truncated = True

        return selected, remaining, truncated

    def _apply_source_cap(self,
                          source: ContextSourceConfig,
                          items: List[ContextItem]) -> Tuple[List[ContextItem], bool]:
        if source.max_tokens is None:
            return items, False

        kept = []
        used = 0
        for item in items:
            if used + (item.token_count or 0) > source.max_tokens:
                return kept, True
            kept.append(item)
            used += item.token_count or 0

        return kept, False

    def _system_message(self, options: ContextBuildOptions) -> str:
        if options.agent_id:
            return self.system_message.replace('{agent_id}', options.agent_id)
        return self.system_message

    @staticmethod
    def _with_token_count(item: ContextItem) -> ContextItem:
        if item.token_count is not None:
            return item
        return item.model_copy(update={'token_count': estimate_token_count(item.content)})

    @staticmethod
    def _rank_key(candidate: _Candidate, prioritize_recent: bool) -> tuple:
        key = (-candidate.priority, -(candidate.item.relevance_score or 0.0))
        if prioritize_recent:
            key += (-_timestamp(candidate.item),)
        return key


def _timestamp(item: ContextItem) -> float:
    """Numeric timestamp from item metadata, 0 when absent or unusable."""
    value = item.metadata.get('timestamp')
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, (int, float)):
        return float(value)
    return 0.0
