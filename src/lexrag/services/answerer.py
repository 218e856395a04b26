"""
Context Assembler / Answerer

Combines retrieved chunks into a context window, asks the generative
provider chain to answer questions or analyze documents, and turns the
output into structured results.

Failure policy
--------------
- Question answering never raises: on any failure the caller receives a
  user-safe apology marked with near-zero confidence.
- Document analysis is a pure-analysis endpoint: GenerationError propagates.
- Unparseable analysis output degrades to an unstructured summary with
  reduced confidence.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from ..config import settings
from ..embeddings.models import SearchResult
from ..llm.chain import GenerationError, ProviderChain
from ..llm.parsing import parse_response
from ..llm.prompts import (
    ANALYSIS_PROMPT,
    ANALYSIS_SYSTEM_PROMPT,
    ANSWER_PROMPT,
    ANSWER_SYSTEM_PROMPT,
)
from ..retrieval.search import SimilaritySearchEngine
from .models import AnalysisPayload, AnalysisResult, AssistantReply, Citation

logger = logging.getLogger("lexrag.answerer")

APOLOGY = (
    "I apologize, but I encountered an error while processing your question. "
    "Please try again or rephrase your question."
)
NO_CONTENT = "No document content available"

CITATION_PREVIEW_CHARS = 200
ANALYSIS_MAX_CHARS = 8000
RAW_SUMMARY_CHARS = 500

CONFIDENCE_WITH_CHUNKS = 0.8
CONFIDENCE_FULL_DOCUMENT = 0.5
CONFIDENCE_FAILED = 0.1

ANALYSIS_CONFIDENCE = {"gemini": 0.85, "openai": 0.8}
ANALYSIS_CONFIDENCE_DEFAULT = 0.8
ANALYSIS_CONFIDENCE_UNSTRUCTURED = 0.6


# ---------------------------------------------------------------------
# Context helpers
# ---------------------------------------------------------------------

def assemble_context(
    results: Sequence[SearchResult],
    fallback_content: Optional[str] = None,
) -> str:
    """
    Join retrieved chunk texts with blank lines.

    With no results the document's full content is used instead, or a
    placeholder when that is empty too.
    """
    if results:
        return "\n\n".join(result.content for result in results)
    return fallback_content or NO_CONTENT


def build_citations(results: Sequence[SearchResult]) -> List[Citation]:
    """One citation per retrieved chunk, labelled ``Chunk N`` (1-based)."""
    return [
        Citation(
            chunk_index=result.chunk_index,
            text=result.content[:CITATION_PREVIEW_CHARS] + "...",
            confidence=result.similarity,
            source=f"Chunk {result.chunk_index + 1}",
        )
        for result in results
    ]


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + (" ..." if len(text) > limit else "")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------
# Answerer
# ---------------------------------------------------------------------

class Answerer:
    def __init__(
        self,
        chain: ProviderChain,
        search: Optional[SimilaritySearchEngine] = None,
    ) -> None:
        self.chain = chain
        self.search = search

    async def _generate_answer(self, question: str, context: str) -> str:
        completion = await self.chain.complete(
            ANSWER_PROMPT.format(context=context, question=question),
            system=ANSWER_SYSTEM_PROMPT,
            max_tokens=500,
            temperature=0.3,
        )
        return completion.text or "I could not generate an answer to your question."

    async def answer_question(self, question: str, context: str) -> str:
        """
        Answer ``question`` from ``context``.

        The prompt tells the model to say when the context does not contain
        the answer. Never raises; returns an apology on provider failure.
        """
        try:
            return await self._generate_answer(question, context)
        except GenerationError as exc:
            logger.error("Question answering failed: %s", exc)
            return APOLOGY

    async def respond(
        self,
        question: str,
        document_id: str,
        document_content: Optional[str] = None,
    ) -> AssistantReply:
        """
        Retrieve context for ``question`` within one document and answer it.

        Returns
        -------
        AssistantReply
            Confidence 0.8 when answered from retrieved chunks, 0.5 when
            answered from the full document, 0.1 on failure.
        """
        started = time.monotonic()

        try:
            results: List[SearchResult] = []
            if self.search is not None:
                results = await self.search.search(
                    question,
                    [document_id],
                    limit=settings.chat_context_chunks,
                    threshold=settings.chat_threshold,
                )

            context = assemble_context(results, document_content)
            content = await self._generate_answer(question, context)
        except Exception:
            logger.exception("Error generating AI response")
            return AssistantReply(
                content=APOLOGY,
                citations=[],
                confidence=CONFIDENCE_FAILED,
                metadata={"timestamp": _now(), "error": True},
            )

        return AssistantReply(
            content=content,
            citations=build_citations(results),
            confidence=CONFIDENCE_WITH_CHUNKS if results else CONFIDENCE_FULL_DOCUMENT,
            metadata={
                "timestamp": _now(),
                "chunks_used": len(results),
                "processing_time_ms": int((time.monotonic() - started) * 1000),
            },
        )

    async def analyze_document(self, content: str, filename: str) -> AnalysisResult:
        """
        Produce a structured summary of a document.

        Raises
        ------
        GenerationError
            If no provider is configured or all providers fail.
        """
        started = time.monotonic()

        completion = await self.chain.complete(
            ANALYSIS_PROMPT.format(
                filename=filename,
                content=_truncate(content, ANALYSIS_MAX_CHARS),
            ),
            system=ANALYSIS_SYSTEM_PROMPT,
            max_tokens=1500,
            temperature=0.3,
        )
        elapsed = int((time.monotonic() - started) * 1000)

        parsed = parse_response(completion.text, AnalysisPayload)
        if parsed.kind == "structured":
            payload: AnalysisPayload = parsed.data
            return AnalysisResult(
                summary=payload.summary or "Summary not available",
                key_points=payload.key_points,
                entities=payload.entities,
                confidence=ANALYSIS_CONFIDENCE.get(
                    completion.provider, ANALYSIS_CONFIDENCE_DEFAULT
                ),
                processing_time_ms=elapsed,
                provider=completion.provider,
            )

        logger.warning("Analysis response from %s was not valid JSON", completion.provider)
        return AnalysisResult(
            summary=parsed.text[:RAW_SUMMARY_CHARS],
            confidence=ANALYSIS_CONFIDENCE_UNSTRUCTURED,
            processing_time_ms=elapsed,
            provider=completion.provider,
        )
