from typing import Callable, List, Optional, Sequence, Union

import pytest

from lexrag.db import InMemoryVectorStore
from lexrag.documents.source import InMemoryDocumentSource
from lexrag.embeddings.models import Chunk, EmbeddingResult, EmbeddingUsage
from lexrag.llm.client import GenerativeProvider, ProviderError

VOCABULARY = ("cat", "dog", "bird", "contract", "payment", "termination")


def keyword_vector(text: str) -> List[float]:
    """Bag-of-words over a tiny vocabulary, plus a small constant axis."""
    lowered = text.lower()
    return [float(lowered.count(word)) for word in VOCABULARY] + [0.01]


class StubProvider(GenerativeProvider):
    """Scriptable provider: canned completions and keyword embeddings."""

    def __init__(
        self,
        name: str = "stub",
        replies: Union[str, Sequence[str]] = "stub answer",
        fail: bool = False,
        vectorize: Callable[[str], List[float]] = keyword_vector,
    ) -> None:
        super().__init__(timeout=1.0)
        self.name = name
        self.replies = [replies] if isinstance(replies, str) else list(replies)
        self.fail = fail
        self.vectorize = vectorize
        self.prompts: List[str] = []
        self.embedded: List[str] = []

    async def complete(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.3,
    ) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise ProviderError(f"{self.name} is down")
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]

    async def embed(self, text: str) -> EmbeddingResult:
        self.embedded.append(text)
        if self.fail:
            raise ProviderError(f"{self.name} is down")
        return EmbeddingResult(
            vector=self.vectorize(text),
            model="stub-embedding",
            usage=EmbeddingUsage(prompt_tokens=len(text.split()), total_tokens=len(text.split())),
        )


def make_chunk(document_id: str, index: int, text: str, embedding: Optional[List[float]] = None) -> Chunk:
    return Chunk(
        document_id=document_id,
        chunk_index=index,
        text=text,
        embedding=embedding if embedding is not None else keyword_vector(text),
    )


@pytest.fixture
def store():
    return InMemoryVectorStore()


@pytest.fixture
def provider():
    return StubProvider()


@pytest.fixture
def documents():
    return InMemoryDocumentSource()
