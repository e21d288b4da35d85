"""
Tests for the in-memory knowledge store.
"""

import pytest

from contextkit.shared import SearchError, ValidationError
from contextkit.services.knowledge import InMemoryKnowledgeStore, KnowledgeItem, KnowledgeMetadata, KnowledgeScope


def item(item_id, content="content", embedding=None, agent_id=None, scope=KnowledgeScope.AGENT, parent_id=None):
    return KnowledgeItem(
        id=item_id,
        content=content,
        embedding=embedding,
        agent_id=agent_id,
        scope=scope,
        metadata=KnowledgeMetadata(parent_id=parent_id),
    )


@pytest.mark.asyncio
async def test_create_and_get(store):
    await store.create_knowledge_item(item("a", "hello"))

    fetched = await store.get_knowledge_by_id("a")

    assert fetched.content == "hello"
    assert await store.get_knowledge_by_id("missing") is None


@pytest.mark.asyncio
async def test_returned_items_are_copies(store):
    await store.create_knowledge_item(item("a", "hello"))

    fetched = await store.get_knowledge_by_id("a")
    fetched.content = "changed"

    assert (await store.get_knowledge_by_id("a")).content == "hello"


@pytest.mark.asyncio
async def test_item_without_id_rejected(store):
    with pytest.raises(ValidationError):
        await store.create_knowledge_item(KnowledgeItem(content="no id"))


@pytest.mark.asyncio
async def test_empty_query_embedding_rejected(store):
    with pytest.raises(SearchError):
        await store.search_by_embedding([])


@pytest.mark.asyncio
async def test_search_by_embedding_ranks_and_filters(store):
    await store.create_knowledge_item(item("a", embedding=[1.0, 0.0]))
    await store.create_knowledge_item(item("b", embedding=[0.0, 1.0]))
    await store.create_knowledge_item(item("c", embedding=[0.7, 0.7]))
    await store.create_knowledge_item(item("d"))

    results = await store.search_by_embedding([1.0, 0.0], min_similarity=0.5)

    assert [r.id for r in results] == ["a", "c"]
    assert results[0].relevance_score == pytest.approx(1.0)
    assert results[1].relevance_score == pytest.approx(0.7071, abs=1e-3)


@pytest.mark.asyncio
async def test_search_by_embedding_limit(store):
    for i in range(5):
        await store.create_knowledge_item(item(f"i{i}", embedding=[1.0, float(i)]))

    results = await store.search_by_embedding([1.0, 0.0], limit=2)

    assert [r.id for r in results] == ["i0", "i1"]


def test_similarity_clipped_to_zero(store):
    import numpy as np

    assert store.calculate_similarity(np.array([-1.0, 0.0]), np.array([1.0, 0.0])) == 0.0
    assert store.calculate_similarity(np.array([0.0, 0.0]), np.array([1.0, 0.0])) == 0.0


@pytest.mark.asyncio
async def test_search_by_keywords(store):
    await store.create_knowledge_item(item("full", "the refund policy text"))
    await store.create_knowledge_item(item("half", "refund only"))
    await store.create_knowledge_item(item("none", "shipping details"))

    results = await store.search_by_keywords("refund policy")

    assert [r.id for r in results] == ["full", "half"]
    assert [r.relevance_score for r in results] == [1.0, 0.5]


@pytest.mark.asyncio
async def test_agent_filter_includes_global(store):
    await store.create_knowledge_item(item("mine", "refund", agent_id="a1"))
    await store.create_knowledge_item(item("shared", "refund", scope=KnowledgeScope.GLOBAL))
    await store.create_knowledge_item(item("theirs", "refund", agent_id="a2"))

    results = await store.search_by_keywords("refund", agent_id="a1")

    assert {r.id for r in results} == {"mine", "shared"}


@pytest.mark.asyncio
async def test_scope_filter(store):
    await store.create_knowledge_item(item("agent", "refund"))
    await store.create_knowledge_item(item("global", "refund", scope=KnowledgeScope.GLOBAL))

    results = await store.search_by_keywords("refund", scope=KnowledgeScope.GLOBAL)

    assert [r.id for r in results] == ["global"]


@pytest.mark.asyncio
async def test_listing_by_agent_and_scope(store):
    await store.create_knowledge_item(item("a", agent_id="a1"))
    await store.create_knowledge_item(item("b", agent_id="a1", scope=KnowledgeScope.GLOBAL))
    await store.create_knowledge_item(item("c", agent_id="a2"))

    assert {i.id for i in await store.get_knowledge_by_agent_id("a1")} == {"a", "b"}
    assert [i.id for i in await store.get_knowledge_by_scope(KnowledgeScope.GLOBAL)] == ["b"]
    assert len(await store.get_knowledge_by_agent_id("a1", limit=1)) == 1


@pytest.mark.asyncio
async def test_deletes(store):
    await store.create_knowledge_item(item("p", agent_id="a1"))
    await store.create_knowledge_item(item("p-chunk-0", agent_id="a1", parent_id="p"))
    await store.create_knowledge_item(item("p-chunk-1", agent_id="a1", parent_id="p"))
    await store.create_knowledge_item(item("g", agent_id="a1", scope=KnowledgeScope.GLOBAL))
    await store.create_knowledge_item(item("s", agent_id="a2", scope=KnowledgeScope.SESSION))
    await store.create_knowledge_item(item("x", agent_id="a3"))

    assert await store.delete_knowledge_by_parent_id("p") == 2
    assert await store.delete_knowledge_by_id("p") is True
    assert await store.delete_knowledge_by_id("p") is False
    assert await store.delete_knowledge_by_agent_and_scope("a1", KnowledgeScope.GLOBAL) == 1
    assert await store.delete_knowledge_by_scope(KnowledgeScope.SESSION) == 1
    assert await store.delete_knowledge_by_agent_id("a3") == 1
    assert await store.delete_all_knowledge() == 0


@pytest.mark.asyncio
async def test_stats(store):
    parent = KnowledgeItem(id="p", content="doc", embedding=[1.0, 0.0, 0.0],
                           metadata=KnowledgeMetadata(is_parent=True))
    chunk = KnowledgeItem(id="p-chunk-0", content="doc", embedding=[1.0, 0.0, 0.0],
                          metadata=KnowledgeMetadata(chunk_index=0, parent_id="p"))
    await store.create_knowledge_item(parent)
    await store.create_knowledge_item(chunk)
    await store.create_knowledge_item(item("g", scope=KnowledgeScope.GLOBAL))

    stats = store.get_stats()

    assert stats['backend'] == 'memory'
    assert stats['total_items'] == 3
    assert stats['items_with_embeddings'] == 2
    assert stats['parent_documents'] == 1
    assert stats['chunks'] == 1
    assert stats['items_by_scope'] == {'agent': 2, 'global': 1}
    assert stats['embedding_dimensions'] == 3


def test_fresh_store_is_empty():
    assert InMemoryKnowledgeStore().get_stats()['total_items'] == 0
