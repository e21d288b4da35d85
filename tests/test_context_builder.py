"""
Tests for context assembly.
"""

import asyncio

import pytest

from contextkit.shared import ConfigurationError, Settings
from contextkit.services.knowledge import KnowledgeItem
from contextkit.services.context_builder import (
    AssembledContext,
    CallableSourceFetcher,
    ContextBuilder,
    ContextBuildOptions,
    ContextItem,
    ContextSourceConfig,
    ContextSourceType,
    StaticSourceFetcher,
    content_hash,
    create_context_builder,
    estimate_token_count,
)


def records(*entries):
    """Fetcher returning fixed (content, tokens, score[, metadata]) records."""
    async def fetch(query, options):
        return [
            {
                'content': entry[0],
                'token_count': entry[1],
                'relevance_score': entry[2],
                'metadata': entry[3] if len(entry) > 3 else {},
            }
            for entry in entries
        ]
    return CallableSourceFetcher(fetch)


def source(source_type, priority, **kwargs):
    return ContextSourceConfig(type=source_type, priority=priority, **kwargs)


@pytest.fixture
def settings():
    return Settings(context_source_timeout=1.0, default_system_message="Agent {agent_id} here")


@pytest.fixture
def builder(settings):
    return ContextBuilder(settings=settings)


class TestBudget:

    @pytest.mark.asyncio
    async def test_required_system_fits(self, builder):
        options = ContextBuildOptions(
            max_tokens=50,
            sources=[source(ContextSourceType.SYSTEM, 50, required=True, params={'instructions': "x" * 120})]
        )

        context = await builder.build_context("hi", options)

        assert len(context.items) == 1
        assert context.items[0].token_count == 30
        assert context.total_tokens == 30
        assert context.truncated is False

    @pytest.mark.asyncio
    async def test_required_item_larger_than_budget(self, builder):
        options = ContextBuildOptions(
            max_tokens=50,
            sources=[source(ContextSourceType.SYSTEM, 50, required=True, params={'instructions': "x" * 320})]
        )

        context = await builder.build_context("hi", options)

        assert context.items == []
        assert context.total_tokens == 0
        assert context.truncated is True

    @pytest.mark.asyncio
    async def test_required_slot_then_greedy_fill(self, builder):
        builder.register_fetcher(ContextSourceType.CONVERSATION, records(("conv60", 60, 0.9), ("conv20", 20, 0.5)))
        builder.register_fetcher(ContextSourceType.KNOWLEDGE, records(("know30", 30, 0.8)))
        options = ContextBuildOptions(max_tokens=50, sources=[
            source(ContextSourceType.KNOWLEDGE, 70),
            source(ContextSourceType.CONVERSATION, 100, required=True),
        ])

        context = await builder.build_context("hi", options)

        assert [item.content for item in context.items] == ["conv20", "know30"]
        assert context.total_tokens == 50
        assert context.truncated is True

    @pytest.mark.asyncio
    async def test_higher_priority_required_source_served_first(self, builder):
        builder.register_fetcher(ContextSourceType.CONVERSATION, records(("conv40", 40, 0.9)))
        options = ContextBuildOptions(max_tokens=50, sources=[
            source(ContextSourceType.SYSTEM, 50, required=True, params={'instructions': "x" * 80}),
            source(ContextSourceType.CONVERSATION, 100, required=True),
        ])

        context = await builder.build_context("hi", options)

        assert [item.content for item in context.items] == ["conv40"]
        assert context.total_tokens == 40
        assert context.truncated is True

    @pytest.mark.asyncio
    async def test_total_never_exceeds_budget(self, builder):
        builder.register_fetcher(ContextSourceType.MEMORY, records(*[(f"m{i}", 7, 0.5) for i in range(10)]))
        options = ContextBuildOptions(max_tokens=30, sources=[source(ContextSourceType.MEMORY, 80)])

        context = await builder.build_context("hi", options)

        assert context.total_tokens == sum(item.token_count for item in context.items) == 28
        assert context.truncated is True

    @pytest.mark.asyncio
    async def test_everything_fits(self, builder):
        builder.register_fetcher(ContextSourceType.GOALS, records(("g1", 5, 0.5), ("g2", 5, 0.4)))
        options = ContextBuildOptions(max_tokens=100, sources=[source(ContextSourceType.GOALS, 90)])

        context = await builder.build_context("hi", options)

        assert context.total_tokens == 10
        assert context.truncated is False

    @pytest.mark.asyncio
    async def test_source_token_cap(self, builder):
        builder.register_fetcher(ContextSourceType.MEMORY, records(("a", 5, 0.9), ("b", 5, 0.8), ("c", 5, 0.7)))
        options = ContextBuildOptions(max_tokens=100, sources=[source(ContextSourceType.MEMORY, 80, max_tokens=10)])

        context = await builder.build_context("hi", options)

        assert [item.content for item in context.items] == ["a", "b"]
        assert context.truncated is True

    @pytest.mark.asyncio
    async def test_missing_token_counts_are_estimated(self, builder):
        async def fetch(query, options):
            return ["abcdefgh"]

        builder.register_fetcher(ContextSourceType.MEMORY, CallableSourceFetcher(fetch))
        options = ContextBuildOptions(max_tokens=100, sources=[source(ContextSourceType.MEMORY, 80)])

        context = await builder.build_context("hi", options)

        assert context.items[0].token_count == 2
        assert context.total_tokens == 2

    @pytest.mark.asyncio
    async def test_budget_defaults_to_settings(self, builder):
        builder.register_fetcher(ContextSourceType.MEMORY, records(("big", 7000, 0.5), ("bigger", 2000, 0.4)))
        options = ContextBuildOptions(sources=[source(ContextSourceType.MEMORY, 80)])

        context = await builder.build_context("hi", options)

        assert builder.default_max_tokens == 8000
        assert [item.content for item in context.items] == ["big"]


class TestOrdering:

    @pytest.mark.asyncio
    async def test_priority_then_relevance(self, builder):
        builder.register_fetcher(ContextSourceType.MEMORY, records(("mem-low", 1, 0.1), ("mem-high", 1, 0.9)))
        builder.register_fetcher(ContextSourceType.GOALS, records(("goal", 1, 0.2)))
        options = ContextBuildOptions(max_tokens=100, sources=[
            source(ContextSourceType.MEMORY, 80),
            source(ContextSourceType.GOALS, 90),
        ])

        context = await builder.build_context("hi", options)

        assert [item.content for item in context.items] == ["goal", "mem-high", "mem-low"]

    @pytest.mark.asyncio
    async def test_prioritize_recent_breaks_ties(self, builder):
        builder.register_fetcher(ContextSourceType.MEMORY, records(
            ("old", 1, 0.5, {'timestamp': 100}),
            ("new", 1, 0.5, {'timestamp': 200}),
        ))
        sources = [source(ContextSourceType.MEMORY, 80)]

        plain = await builder.build_context("hi", ContextBuildOptions(max_tokens=100, sources=sources))
        recent = await builder.build_context(
            "hi", ContextBuildOptions(max_tokens=100, sources=sources, prioritize_recent=True)
        )

        assert [item.content for item in plain.items] == ["old", "new"]
        assert [item.content for item in recent.items] == ["new", "old"]

    @pytest.mark.asyncio
    async def test_deduplicate_keeps_higher_ranked(self, builder):
        builder.register_fetcher(ContextSourceType.MEMORY, records(("Hello   World", 3, 0.5)))
        builder.register_fetcher(ContextSourceType.GOALS, records(("hello world", 3, 0.5)))
        sources = [source(ContextSourceType.MEMORY, 80), source(ContextSourceType.GOALS, 90)]

        deduped = await builder.build_context("hi", ContextBuildOptions(max_tokens=100, sources=sources, deduplicate=True))
        kept = await builder.build_context("hi", ContextBuildOptions(max_tokens=100, sources=sources))

        assert [item.content for item in deduped.items] == ["hello world"]
        assert len(kept.items) == 2


class TestIsolation:

    @pytest.mark.asyncio
    async def test_failing_source_contributes_nothing(self, builder):
        async def broken(query, options):
            raise RuntimeError("backend down")

        builder.register_fetcher(ContextSourceType.MEMORY, CallableSourceFetcher(broken))
        builder.register_fetcher(ContextSourceType.GOALS, records(("goal", 2, 0.5)))
        options = ContextBuildOptions(max_tokens=100, sources=[
            source(ContextSourceType.MEMORY, 80),
            source(ContextSourceType.GOALS, 90),
        ])

        context = await builder.build_context("hi", options)

        assert [item.content for item in context.items] == ["goal"]

    @pytest.mark.asyncio
    async def test_slow_source_times_out(self, builder):
        async def slow(query, options):
            await asyncio.sleep(5)
            return ["late"]

        builder.register_fetcher(ContextSourceType.MEMORY, CallableSourceFetcher(slow))
        builder.register_fetcher(ContextSourceType.GOALS, records(("goal", 2, 0.5)))
        options = ContextBuildOptions(max_tokens=100, sources=[
            source(ContextSourceType.MEMORY, 80, params={'timeout': 0.05}),
            source(ContextSourceType.GOALS, 90),
        ])

        context = await builder.build_context("hi", options)

        assert [item.content for item in context.items] == ["goal"]

    @pytest.mark.asyncio
    async def test_source_without_fetcher(self, builder):
        options = ContextBuildOptions(max_tokens=100, sources=[source(ContextSourceType.CURRENT_STATE, 10)])

        context = await builder.build_context("hi", options)

        assert context == AssembledContext()

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_empty_context(self, builder, mocker):
        mocker.patch.object(builder, "_allocate", side_effect=RuntimeError("bug"))

        context = await builder.build_context("hi", ContextBuildOptions(agent_id="a1"))

        assert context.items == []
        assert context.total_tokens == 0
        assert context.system is None


class TestSystemMessage:

    @pytest.mark.asyncio
    async def test_agent_id_filled_in(self, builder):
        context = await builder.build_context("hi", ContextBuildOptions(agent_id="a1"))

        assert context.system == "Agent a1 here"

    @pytest.mark.asyncio
    async def test_no_ids_no_system(self, builder):
        context = await builder.build_context("hi")

        assert context.system is None

    @pytest.mark.asyncio
    async def test_default_sources_include_system_item(self, builder):
        context = await builder.build_context("hi")

        assert [item.source_type for item in context.items] == [ContextSourceType.SYSTEM]
        assert context.items[0].content == "Agent {agent_id} here"


def test_default_sources(builder):
    sources = builder.get_default_sources()

    assert [s.type for s in sources] == [
        ContextSourceType.CONVERSATION,
        ContextSourceType.GOALS,
        ContextSourceType.MEMORY,
        ContextSourceType.KNOWLEDGE,
        ContextSourceType.USER_PROFILE,
        ContextSourceType.SYSTEM,
    ]
    assert [s.priority for s in sources] == [100, 90, 80, 70, 60, 50]
    assert [s.type for s in sources if s.required] == [ContextSourceType.CONVERSATION, ContextSourceType.SYSTEM]


def test_deduplicate_items_keeps_first(builder):
    items = [
        ContextItem(source_type=ContextSourceType.MEMORY, content="Same  text"),
        ContextItem(source_type=ContextSourceType.GOALS, content="same text"),
        ContextItem(source_type=ContextSourceType.GOALS, content="other"),
    ]

    assert builder.deduplicate_items(items) == [items[0], items[2]]


class TestFetchers:

    @pytest.mark.asyncio
    async def test_knowledge_source(self, manager, settings):
        await manager.create_knowledge(KnowledgeItem(content="refund policy details"))
        await manager.create_knowledge(KnowledgeItem(content="shipping times and carriers"))
        builder = create_context_builder(knowledge_manager=manager, settings=settings)
        options = ContextBuildOptions(max_tokens=500, sources=[
            source(ContextSourceType.KNOWLEDGE, 70, params={'min_similarity': 0.0})
        ])

        context = await builder.build_context("refund policy details", options)

        top = context.items[0]
        assert top.source_type == ContextSourceType.KNOWLEDGE
        assert top.content == "refund policy details"
        assert top.token_count == estimate_token_count("refund policy details")
        assert top.metadata['id']

    @pytest.mark.asyncio
    async def test_knowledge_source_query_override(self, manager, settings, mocker):
        spy = mocker.spy(manager, "search_knowledge")
        builder = create_context_builder(knowledge_manager=manager, settings=settings)
        options = ContextBuildOptions(max_tokens=500, agent_id="a1", sources=[
            source(ContextSourceType.KNOWLEDGE, 70, query="override", params={'max_results': 2})
        ])

        await builder.build_context("original", options)

        params = spy.call_args[0][0]
        assert params.query == "override"
        assert params.agent_id == "a1"
        assert params.max_results == 2

    @pytest.mark.asyncio
    async def test_user_profile_source(self, settings):
        builder = create_context_builder(user_profile=["likes tea", ""], settings=settings)
        options = ContextBuildOptions(max_tokens=100, sources=[source(ContextSourceType.USER_PROFILE, 60)])

        context = await builder.build_context("hi", options)

        assert [item.content for item in context.items] == ["likes tea"]
        assert context.items[0].source_type == ContextSourceType.USER_PROFILE

    @pytest.mark.asyncio
    async def test_static_fetcher_uses_source_type(self):
        fetcher = StaticSourceFetcher(["state"], relevance_score=0.4)

        items = await fetcher(source(ContextSourceType.CURRENT_STATE, 10), "q", ContextBuildOptions())

        assert items[0].source_type == ContextSourceType.CURRENT_STATE
        assert items[0].relevance_score == 0.4

    @pytest.mark.asyncio
    async def test_callable_fetcher_accepts_strings_and_dicts(self):
        async def fetch(query, options):
            return [query, {'content': "from dict", 'relevance_score': 0.3}]

        items = await CallableSourceFetcher(fetch)(source(ContextSourceType.MEMORY, 80), "q", ContextBuildOptions())

        assert [item.content for item in items] == ["q", "from dict"]
        assert items[1].relevance_score == 0.3
        assert items[1].token_count == 3

    def test_factory_extra_fetchers_win(self, settings):
        custom = StaticSourceFetcher(["custom"])

        builder = create_context_builder(user_profile=["x"], fetchers={'user_profile': custom}, settings=settings)

        assert builder._fetchers['user_profile'] is custom


class TestUtils:

    def test_estimate_token_count(self):
        assert estimate_token_count("abcde") == 2
        assert estimate_token_count("abcd") == 1
        assert estimate_token_count("") == 0

    def test_content_hash_values(self):
        assert content_hash("a") == "61"
        assert content_hash("ab") == "c21"

    def test_content_hash_normalizes(self):
        assert content_hash("Hello   World\n") == content_hash("hello world")

    def test_content_hash_uses_first_hundred_chars(self):
        assert content_hash("x" * 100 + "tail one") == content_hash("x" * 100 + "tail two")


def test_unknown_source_type_rejected(builder):
    with pytest.raises(ConfigurationError):
        builder.register_fetcher("weather", StaticSourceFetcher(["sunny"]))
