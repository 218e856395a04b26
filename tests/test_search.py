import pytest

from lexrag.embeddings.embedder import Embedder
from lexrag.indexing.indexer import DocumentIndexer
from lexrag.retrieval.search import SimilaritySearchEngine

from conftest import StubProvider


@pytest.fixture
async def engine(store, provider):
    indexer = DocumentIndexer(Embedder(provider), store, chunk_size=20, overlap=0)
    await indexer.index_document("doc-1", "The cat sat. The dog ran.")
    await indexer.index_document("doc-2", "The payment is late. The contract ended.")
    return SimilaritySearchEngine(Embedder(provider), store)


@pytest.mark.asyncio
async def test_nearest_chunk_first(engine):
    results = await engine.search("cat", threshold=0.5)

    assert results[0].document_id == "doc-1"
    assert results[0].content == "The cat sat."
    assert results[0].similarity > 0.9


@pytest.mark.asyncio
async def test_nothing_above_threshold_is_empty(engine):
    assert await engine.search("bird", threshold=0.9) == []


@pytest.mark.asyncio
async def test_restricted_to_document_ids(engine):
    results = await engine.search("contract payment", ["doc-2"], threshold=0.1)

    assert results
    assert {r.document_id for r in results} == {"doc-2"}


@pytest.mark.asyncio
async def test_limit(engine):
    assert len(await engine.search("cat dog", limit=1, threshold=0.0)) == 1
    assert await engine.search("cat", limit=0) == []


@pytest.mark.asyncio
async def test_query_embedding_failure_uses_text_search(engine, store):
    degraded = SimilaritySearchEngine(Embedder(StubProvider(fail=True)), store)

    results = await degraded.search("payment", threshold=0.99)

    assert [r.content for r in results] == ["The payment is late."]
    assert results[0].similarity == 0.5
