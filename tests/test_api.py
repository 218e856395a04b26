import contextlib
import json

import pytest
from fastapi.testclient import TestClient

from lexrag.main import create_app
from lexrag.api.dependencies import (
    get_analysis_cache,
    get_comparison_cache,
    get_document_source,
    get_embedder,
    get_indexing_queue,
    get_provider_chain,
    get_session_store,
    get_store,
)
from lexrag.db import InMemoryVectorStore
from lexrag.documents.source import InMemoryDocumentSource
from lexrag.embeddings.embedder import Embedder
from lexrag.indexing.queue import IndexingQueue
from lexrag.llm.chain import ProviderChain
from lexrag.services.artifacts import ArtifactCache
from lexrag.sessions.store import SessionStore

from conftest import StubProvider

LEASE = "The cat sat. The payment is late. The contract ended."
ALICE = {"X-User-Id": "alice"}


@pytest.fixture
def llm():
    return StubProvider("gemini", replies="Generated answer.")


@pytest.fixture
def queue():
    return IndexingQueue()


@pytest.fixture
def app(llm, queue):
    app = create_app()

    store = InMemoryVectorStore()
    documents = InMemoryDocumentSource()
    documents.add("lease", LEASE, title="Lease")
    documents.add("other", "The dog ran. The payment is late.", title="Other")

    sessions = SessionStore()
    analysis_cache = ArtifactCache()
    comparison_cache = ArtifactCache()
    embedder = Embedder(StubProvider("openai"))
    chain = ProviderChain([llm])

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_document_source] = lambda: documents
    app.dependency_overrides[get_embedder] = lambda: embedder
    app.dependency_overrides[get_provider_chain] = lambda: chain
    app.dependency_overrides[get_session_store] = lambda: sessions
    app.dependency_overrides[get_analysis_cache] = lambda: analysis_cache
    app.dependency_overrides[get_comparison_cache] = lambda: comparison_cache
    app.dependency_overrides[get_indexing_queue] = lambda: queue

    # Mock lifespan to avoid DB connection and the background worker
    @contextlib.asynccontextmanager
    async def mock_lifespan(app):
        yield

    app.router.lifespan_context = mock_lifespan
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def _index(client, document_id="lease", **body):
    return client.post(f"/documents/{document_id}/index", json=body)


# ---------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------

def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "providers": ["gemini"], "embeddings": True}


# ---------------------------------------------------------------------
# Documents & embeddings
# ---------------------------------------------------------------------

def test_index_stored_document(client):
    resp = _index(client)

    assert resp.status_code == 200
    data = resp.json()
    assert data["document_id"] == "lease"
    assert data["chunks_total"] == 1
    assert data["chunks_indexed"] == 1

    chunks = client.get("/documents/lease/chunks").json()
    assert [c["chunk_index"] for c in chunks] == [0]


def test_index_explicit_content(client):
    resp = _index(client, "adhoc", content="A bird flew.")

    assert resp.status_code == 200
    assert resp.json()["chunks_indexed"] == 1


def test_index_unknown_document(client):
    resp = _index(client, "missing")

    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


def test_index_blank_content(client):
    resp = _index(client, content="   ")

    assert resp.status_code == 422
    assert resp.json()["error"] == "indexing_failed"


def test_index_in_background(client, queue):
    resp = _index(client, background=True)

    assert resp.status_code == 202
    assert resp.json() == {"status": "queued", "count": 1}
    assert queue.qsize() == 1


def test_delete_embeddings(client):
    _index(client)

    resp = client.delete("/documents/lease/embeddings")

    assert resp.status_code == 200
    assert resp.json() == {"status": "deleted", "count": 1}
    assert client.get("/documents/lease/chunks").json() == []


def test_embedding_stats(client):
    _index(client)
    _index(client, "other")

    stats = client.get("/embeddings/stats").json()
    assert stats["total_chunks"] == 2
    assert stats["documents_with_embeddings"] == 2

    one = client.get("/embeddings/stats", params={"document_id": "other"}).json()
    assert one["total_chunks"] == 1


# ---------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------

def test_search(client):
    _index(client)
    _index(client, "other")

    resp = client.post("/search", json={"query": "payment", "threshold": 0.1})

    assert resp.status_code == 200
    results = resp.json()
    assert {r["document_id"] for r in results} == {"lease", "other"}
    assert all(0.0 <= r["similarity"] <= 1.0 for r in results)


def test_search_restricted(client):
    _index(client)
    _index(client, "other")

    resp = client.post(
        "/search",
        json={"query": "payment", "document_ids": ["other"], "threshold": 0.1},
    )

    assert {r["document_id"] for r in resp.json()} == {"other"}


def test_search_validates_request(client):
    assert client.post("/search", json={"query": ""}).status_code == 422
    assert client.post("/search", json={"query": "x", "limit": 0}).status_code == 422


# ---------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------

def _create_session(client, headers=ALICE):
    return client.post("/chat/sessions", json={"document_id": "lease"}, headers=headers)


def test_chat_flow(client):
    resp = _create_session(client)
    assert resp.status_code == 201
    session = resp.json()
    assert session["title"] == "Chat about Lease"

    resp = client.post(
        f"/chat/sessions/{session['session_id']}/messages",
        json={"content": "What about the cat?"},
        headers=ALICE,
    )
    assert resp.status_code == 200
    exchange = resp.json()
    assert exchange["user_message"]["content"] == "What about the cat?"
    assert exchange["assistant_message"]["content"] == "Generated answer."

    history = client.get(f"/chat/sessions/{session['session_id']}/messages", headers=ALICE).json()
    assert [m["role"] for m in history] == ["user", "assistant"]

    listed = client.get("/chat/sessions", headers=ALICE).json()
    assert [s["message_count"] for s in listed] == [2]


def test_chat_requires_user_header(client):
    assert client.post("/chat/sessions", json={"document_id": "lease"}).status_code == 422


def test_chat_unknown_document(client):
    resp = client.post("/chat/sessions", json={"document_id": "missing"}, headers=ALICE)

    assert resp.status_code == 404


def test_chat_session_is_private(client):
    session_id = _create_session(client).json()["session_id"]
    mallory = {"X-User-Id": "mallory"}

    assert client.get(f"/chat/sessions/{session_id}", headers=mallory).status_code == 404
    assert client.delete(f"/chat/sessions/{session_id}", headers=mallory).status_code == 403

    resp = client.delete(f"/chat/sessions/{session_id}", headers=ALICE)
    assert resp.status_code == 200
    assert client.get(f"/chat/sessions/{session_id}", headers=ALICE).status_code == 404


def test_rename_chat_session(client):
    session_id = _create_session(client).json()["session_id"]

    resp = client.put(f"/chat/sessions/{session_id}", json={"title": "Rent dispute"}, headers=ALICE)

    assert resp.status_code == 200
    assert resp.json()["title"] == "Rent dispute"
    assert client.get(f"/chat/sessions/{session_id}", headers=ALICE).json()["title"] == "Rent dispute"

    mallory = {"X-User-Id": "mallory"}
    assert client.put(f"/chat/sessions/{session_id}", json={"title": "x"}, headers=mallory).status_code == 403
    assert client.put("/chat/sessions/missing", json={"title": "x"}, headers=ALICE).status_code == 404
    assert client.put(f"/chat/sessions/{session_id}", json={"title": ""}, headers=ALICE).status_code == 422


def test_message_to_deleted_session(client):
    session_id = _create_session(client).json()["session_id"]
    client.delete(f"/chat/sessions/{session_id}", headers=ALICE)

    resp = client.post(
        f"/chat/sessions/{session_id}/messages",
        json={"content": "Still there?"},
        headers=ALICE,
    )

    assert resp.status_code == 404


def test_chat_reply_survives_provider_outage(client, llm):
    llm.fail = True
    session_id = _create_session(client).json()["session_id"]

    resp = client.post(
        f"/chat/sessions/{session_id}/messages",
        json={"content": "Anything?"},
        headers=ALICE,
    )

    assert resp.status_code == 200
    assert resp.json()["assistant_message"]["confidence"] == 0.1


# ---------------------------------------------------------------------
# Comparison & analysis
# ---------------------------------------------------------------------

def test_compare_documents(client, llm):
    llm.fail = True

    resp = client.post("/comparisons", json={"doc1_id": "lease", "doc2_id": "other"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["source"] == "lexical"
    assert 0.0 <= data["similarity_score"] <= 1.0
    assert data["statistics"]["common_words"] > 0


def test_compare_document_with_itself(client):
    resp = client.post("/comparisons", json={"doc1_id": "lease", "doc2_id": "lease"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "bad_request"


def test_compare_texts_with_ai(client, llm):
    llm.replies = [json.dumps({"similarityScore": 0.3, "differences": ["Rent changed"]})]

    resp = client.post("/comparisons/text", json={"doc1": "a b c", "doc2": "a b d"})

    data = resp.json()
    assert data["source"] == "ai"
    assert data["similarity_score"] == 0.3
    assert data["differences"][0]["text"] == "Rent changed"


def test_analysis(client, llm):
    llm.replies = [json.dumps({"summary": "A lease.", "keyPoints": ["Late payment"], "entities": []})]

    resp = client.post("/documents/lease/analysis")

    assert resp.status_code == 200
    data = resp.json()
    assert data["summary"] == "A lease."
    assert data["confidence"] == 0.85

    client.post("/documents/lease/analysis")
    assert len(llm.prompts) == 1


def test_analysis_without_providers(client, llm):
    llm.fail = True

    resp = client.post("/documents/lease/analysis")

    assert resp.status_code == 503
    assert resp.json()["error"] == "service_unavailable"


def test_deleting_embeddings_drops_cached_artifacts(client, llm):
    llm.replies = [json.dumps({"summary": "A lease.", "keyPoints": [], "entities": []})]
    client.post("/documents/lease/analysis")
    client.post("/comparisons", json={"doc1_id": "lease", "doc2_id": "other"})
    prompts = len(llm.prompts)

    client.delete("/documents/lease/embeddings")
    client.post("/documents/lease/analysis")
    client.post("/comparisons", json={"doc1_id": "other", "doc2_id": "lease"})

    assert len(llm.prompts) == prompts + 2


def test_reindexing_drops_cached_analysis(client, llm):
    llm.replies = [json.dumps({"summary": "A lease.", "keyPoints": [], "entities": []})]
    client.post("/documents/lease/analysis")

    _index(client, content="The rent doubled.")
    client.post("/documents/lease/analysis")

    assert len(llm.prompts) == 2
