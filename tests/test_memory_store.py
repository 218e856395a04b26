"""
Embedding store contract, exercised against the in-memory implementation.
"""

import pytest

from lexrag.db import FALLBACK_SIMILARITY, InMemoryVectorStore, RetrievalError, StoreError
from lexrag.db.vector_store import clamp_similarity

from conftest import keyword_vector, make_chunk


@pytest.fixture
async def seeded(store):
    await store.replace_chunks("doc-a", [
        make_chunk("doc-a", 0, "The cat sat on the mat."),
        make_chunk("doc-a", 1, "The dog chased the cat."),
        make_chunk("doc-a", 2, "Payment is due on termination."),
    ])
    await store.replace_chunks("doc-b", [
        make_chunk("doc-b", 0, "A bird sang."),
        make_chunk("doc-b", 1, "The cat watched the bird."),
    ])
    return store


class TestReplaceAndDelete:
    @pytest.mark.asyncio
    async def test_replace_is_idempotent(self, store):
        chunks = [make_chunk("doc", 0, "cat"), make_chunk("doc", 1, "dog")]
        await store.replace_chunks("doc", chunks)
        await store.replace_chunks("doc", chunks)

        stored = await store.get_chunks("doc")
        assert [r.chunk_index for r in stored] == [0, 1]

    @pytest.mark.asyncio
    async def test_replace_drops_previous_set(self, store):
        await store.replace_chunks("doc", [make_chunk("doc", i, f"text {i}") for i in range(3)])
        await store.replace_chunks("doc", [make_chunk("doc", 0, "only")])

        stored = await store.get_chunks("doc")
        assert [r.content for r in stored] == ["only"]

    @pytest.mark.asyncio
    async def test_delete_then_get_is_empty(self, seeded):
        removed = await seeded.delete_chunks("doc-a")

        assert removed == 3
        assert await seeded.get_chunks("doc-a") == []
        assert await seeded.delete_chunks("doc-a") == 0

    @pytest.mark.asyncio
    async def test_get_chunks_orders_by_index(self, store):
        await store.replace_chunks("doc", [make_chunk("doc", 2, "c"), make_chunk("doc", 0, "a"), make_chunk("doc", 1, "b")])

        assert [r.content for r in await store.get_chunks("doc")] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_duplicate_index_rejected(self, store):
        with pytest.raises(StoreError):
            await store.replace_chunks("doc", [make_chunk("doc", 0, "a"), make_chunk("doc", 0, "b")])

    @pytest.mark.asyncio
    async def test_foreign_chunk_rejected(self, store):
        with pytest.raises(StoreError):
            await store.replace_chunks("doc", [make_chunk("other", 0, "a")])


class TestSimilaritySearch:
    @pytest.mark.asyncio
    async def test_results_are_ranked_and_bounded(self, seeded):
        results = await seeded.similarity_search(
            keyword_vector("cat"), query_text="cat", limit=2, threshold=0.0
        )

        assert len(results) == 2
        assert results[0].similarity >= results[1].similarity
        assert all(0.0 <= r.similarity <= 1.0 for r in results)

    @pytest.mark.asyncio
    async def test_threshold_is_respected(self, seeded):
        results = await seeded.similarity_search(
            keyword_vector("bird"), query_text="bird", threshold=0.9
        )

        assert results
        assert all(r.similarity >= 0.9 for r in results)
        assert {r.content for r in results} == {"A bird sang."}

    @pytest.mark.asyncio
    async def test_document_filter(self, seeded):
        results = await seeded.similarity_search(
            keyword_vector("cat"), query_text="cat", document_ids=["doc-b"], threshold=0.0
        )

        assert results
        assert {r.document_id for r in results} == {"doc-b"}

    @pytest.mark.asyncio
    async def test_empty_filter_means_all_documents(self, seeded):
        results = await seeded.similarity_search(
            keyword_vector("cat"), query_text="cat", document_ids=[], threshold=0.0
        )

        assert {r.document_id for r in results} == {"doc-a", "doc-b"}

    @pytest.mark.asyncio
    async def test_ties_break_on_chunk_index(self, store):
        same = [1.0, 0.0]
        await store.replace_chunks("doc", [
            make_chunk("doc", 1, "second", same),
            make_chunk("doc", 0, "first", same),
        ])

        results = await store.similarity_search(same, query_text="x", threshold=0.5)
        assert [r.chunk_index for r in results] == [0, 1]

    @pytest.mark.asyncio
    async def test_zero_limit_returns_nothing(self, seeded):
        assert await seeded.similarity_search(keyword_vector("cat"), query_text="cat", limit=0) == []

    @pytest.mark.asyncio
    async def test_vector_failure_falls_back_to_text(self, seeded):
        seeded.vector_search_enabled = False

        results = await seeded.similarity_search(
            keyword_vector("bird"), query_text="bird", threshold=0.99
        )

        assert results
        assert all(r.similarity == FALLBACK_SIMILARITY for r in results)
        assert all("bird" in r.content.lower() for r in results)
        assert [r.chunk_index for r in results] == sorted(r.chunk_index for r in results)

    @pytest.mark.asyncio
    async def test_dimension_mismatch_is_a_retrieval_error(self, seeded):
        with pytest.raises(RetrievalError):
            await seeded._vector_search([1.0, 0.0], None, 10, 0.0)


class TestTextSearch:
    @pytest.mark.asyncio
    async def test_case_insensitive_substring(self, seeded):
        results = await seeded.text_search("PAYMENT")

        assert [r.content for r in results] == ["Payment is due on termination."]
        assert results[0].similarity == 0.5


class TestStats:
    @pytest.mark.asyncio
    async def test_global_stats(self, seeded):
        stats = await seeded.get_stats()

        assert stats.total_chunks == 5
        assert stats.documents_with_embeddings == 2
        assert stats.average_chunk_index == pytest.approx((0 + 1 + 2 + 0 + 1) / 5)
        assert {(c.document_id, c.chunk_count) for c in stats.chunks_per_document} == {
            ("doc-a", 3),
            ("doc-b", 2),
        }

    @pytest.mark.asyncio
    async def test_stats_for_unknown_document(self):
        stats = await InMemoryVectorStore().get_stats("missing")

        assert stats.total_chunks == 0
        assert stats.average_chunk_index is None


def test_clamp_similarity():
    assert clamp_similarity(1.0000001) == 1.0
    assert clamp_similarity(-0.2) == 0.0
    assert clamp_similarity(0.42) == 0.42
