"""
Document Content Sources

The retrieval core never extracts text from files; it asks a DocumentSource
for the already-extracted raw text of a document.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import Document


@dataclass(frozen=True)
class DocumentContent:
    document_id: str
    title: str
    content: str
    filename: Optional[str] = None


class DocumentSource(ABC):
    @abstractmethod
    async def get(self, document_id: str) -> Optional[DocumentContent]:
        """Return the document's extracted text, or None if unknown."""


class SqlDocumentSource(DocumentSource):
    """Reads documents from the ``documents`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, document_id: str) -> Optional[DocumentContent]:
        result = await self._session.execute(
            select(Document).where(Document.id == document_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None

        return DocumentContent(
            document_id=row.id,
            title=row.title,
            content=row.content or "",
            filename=row.filename,
        )


class InMemoryDocumentSource(DocumentSource):
    """Dictionary-backed source for tests and scripts."""

    def __init__(self, documents: Optional[Dict[str, DocumentContent]] = None) -> None:
        self._documents: Dict[str, DocumentContent] = dict(documents or {})

    def add(self, document_id: str, content: str, title: Optional[str] = None) -> DocumentContent:
        doc = DocumentContent(
            document_id=document_id,
            title=title or document_id,
            content=content,
        )
        self._documents[document_id] = doc
        return doc

    async def get(self, document_id: str) -> Optional[DocumentContent]:
        return self._documents.get(document_id)
