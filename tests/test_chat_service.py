"""
Chat sessions: store semantics and the message cycle.
"""

import pytest

from lexrag.embeddings.embedder import Embedder
from lexrag.indexing.indexer import DocumentIndexer
from lexrag.llm.chain import ProviderChain
from lexrag.retrieval.search import SimilaritySearchEngine
from lexrag.services.answerer import APOLOGY, Answerer
from lexrag.services.chat import ChatService
from lexrag.sessions.store import ChatMessage, SessionNotFoundError, SessionStore

from conftest import StubProvider

DOC_TEXT = "The cat sat. The payment is late."


# ---------------------------------------------------------------------
# SessionStore
# ---------------------------------------------------------------------

class TestSessionStore:
    def test_create_and_get(self):
        store = SessionStore()
        session = store.create("doc", "alice", "Chat about doc")

        fetched = store.get(session.session_id)
        assert fetched.title == "Chat about doc"
        assert fetched.messages == []
        assert store.has_session(session.session_id)

    def test_get_returns_a_copy(self):
        store = SessionStore()
        session = store.create("doc", "alice", "t")
        store.append(session.session_id, ChatMessage(role="user", content="hi"))

        copy = store.get(session.session_id)
        copy.messages.clear()

        assert len(store.get_messages(session.session_id)) == 1

    def test_history_is_trimmed(self):
        store = SessionStore(max_messages_per_session=2)
        session = store.create("doc", "alice", "t")
        for i in range(3):
            store.append(session.session_id, ChatMessage(role="user", content=str(i)))

        assert [m.content for m in store.get_messages(session.session_id)] == ["1", "2"]

    def test_append_to_unknown_session(self):
        with pytest.raises(SessionNotFoundError):
            SessionStore().append("missing", ChatMessage(role="user", content="hi"))

    def test_touch_is_monotonic(self):
        store = SessionStore()
        session = store.create("doc", "alice", "t")

        bumped = store.touch(session.session_id)

        assert bumped >= session.updated_at

    def test_list_for_user_and_document(self):
        store = SessionStore()
        store.create("doc-1", "alice", "a")
        store.create("doc-2", "alice", "b")
        store.create("doc-1", "bob", "c")

        assert len(store.list_for_user("alice")) == 2
        assert [s.title for s in store.list_for_user("alice", "doc-1")] == ["a"]

    def test_rename_bumps_updated_at(self):
        store = SessionStore()
        session = store.create("doc", "alice", "old")

        renamed = store.rename(session.session_id, "new")

        assert renamed.title == "new"
        assert store.get(session.session_id).title == "new"
        assert renamed.updated_at >= session.updated_at

    def test_rename_unknown_session(self):
        with pytest.raises(SessionNotFoundError):
            SessionStore().rename("missing", "title")


# ---------------------------------------------------------------------
# ChatService
# ---------------------------------------------------------------------

@pytest.fixture
async def chat(store, provider, documents):
    documents.add("doc", DOC_TEXT, title="Lease")
    await DocumentIndexer(Embedder(provider), store, chunk_size=20, overlap=0).index_document("doc", DOC_TEXT)

    search = SimilaritySearchEngine(Embedder(provider), store)
    llm = StubProvider("gemini", replies="The cat sat on the mat.")
    return ChatService(Answerer(ProviderChain([llm]), search), SessionStore(), documents)


@pytest.mark.asyncio
async def test_create_session_default_title(chat):
    session = await chat.create_session("doc", "alice")

    assert session.title == "Chat about Lease"
    assert session.user_id == "alice"


@pytest.mark.asyncio
async def test_create_session_for_unknown_document(chat):
    with pytest.raises(LookupError):
        await chat.create_session("missing", "alice")


@pytest.mark.asyncio
async def test_send_message_cycle(chat):
    session = await chat.create_session("doc", "alice")

    user_msg, assistant_msg = await chat.send_message(session.session_id, "cat", "alice")

    assert user_msg.role == "user"
    assert assistant_msg.role == "assistant"
    assert assistant_msg.content == "The cat sat on the mat."
    assert assistant_msg.confidence == 0.8
    assert assistant_msg.citations[0].source == "Chunk 1"

    history = chat.get_messages(session.session_id, "alice")
    assert [m.role for m in history] == ["user", "assistant"]
    assert chat.get_session(session.session_id, "alice").updated_at >= session.updated_at


@pytest.mark.asyncio
async def test_provider_outage_still_records_reply(chat):
    chat.answerer.chain = ProviderChain([StubProvider(fail=True)])
    session = await chat.create_session("doc", "alice")

    _, assistant_msg = await chat.send_message(session.session_id, "cat", "alice")

    assert assistant_msg.content == APOLOGY
    assert assistant_msg.confidence == 0.1
    assert len(chat.get_messages(session.session_id, "alice")) == 2


@pytest.mark.asyncio
async def test_other_users_cannot_see_session(chat):
    session = await chat.create_session("doc", "alice")

    with pytest.raises(SessionNotFoundError):
        await chat.send_message(session.session_id, "cat", "mallory")
    with pytest.raises(SessionNotFoundError):
        chat.get_messages(session.session_id, "mallory")


@pytest.mark.asyncio
async def test_delete_session(chat):
    session = await chat.create_session("doc", "alice")

    with pytest.raises(PermissionError):
        chat.delete_session(session.session_id, "mallory")

    chat.delete_session(session.session_id, "alice")

    with pytest.raises(SessionNotFoundError):
        chat.delete_session(session.session_id, "alice")
    assert chat.list_sessions("alice") == []


@pytest.mark.asyncio
async def test_update_session_title(chat):
    session = await chat.create_session("doc", "alice")

    with pytest.raises(PermissionError):
        chat.update_session(session.session_id, "mallory", "Hijacked")
    with pytest.raises(SessionNotFoundError):
        chat.update_session("missing", "alice", "Renamed")

    updated = chat.update_session(session.session_id, "alice", "Renamed")

    assert updated.title == "Renamed"
    assert chat.get_session(session.session_id, "alice").title == "Renamed"


@pytest.mark.asyncio
async def test_session_deleted_while_answering(chat):
    session = await chat.create_session("doc", "alice")
    respond = chat.answerer.respond

    async def respond_then_delete(*args, **kwargs):
        chat.sessions.delete(session.session_id)
        return await respond(*args, **kwargs)

    chat.answerer.respond = respond_then_delete

    with pytest.raises(SessionNotFoundError):
        await chat.send_message(session.session_id, "cat", "alice")
