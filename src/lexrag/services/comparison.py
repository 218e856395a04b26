"""
Document Comparison

Pairwise comparison of two document texts.

A deterministic lexical baseline is always computed. When a generative
provider answers with valid structured output, its score, differences and
common clauses replace the baseline ones; the word statistics always come
from the baseline. ``compare_documents`` therefore never fails, even with
every provider down.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Union

from ..llm.chain import GenerationError, ProviderChain
from ..llm.parsing import parse_response
from ..llm.prompts import COMPARISON_PROMPT, COMPARISON_SYSTEM_PROMPT
from .models import (
    CommonClause,
    ComparisonPayload,
    ComparisonResult,
    ComparisonStatistics,
    Difference,
    Position,
    WordCounts,
)

logger = logging.getLogger("lexrag.comparison")

MAX_LISTED_WORDS = 10
COMPARISON_MAX_CHARS = 4000

_DIFFERENCE_TYPES = {"added", "removed", "modified"}


# ---------------------------------------------------------------------
# Lexical baseline
# ---------------------------------------------------------------------

def _ordered_unique(words: List[str]) -> List[str]:
    return list(dict.fromkeys(words))


def lexical_comparison(text1: str, text2: str) -> ComparisonResult:
    """
    Word-set overlap of two texts.

    ``similarity_score = |common| / max(|set1|, |set2|, 1)`` over lowercased
    whitespace tokens. Listed words follow first-occurrence order.
    """
    words1 = text1.lower().split()
    words2 = text2.lower().split()

    unique1 = _ordered_unique(words1)
    unique2 = _ordered_unique(words2)
    set1, set2 = set(unique1), set(unique2)

    common = [w for w in unique1 if w in set2]
    only1 = [w for w in unique1 if w not in set2]
    only2 = [w for w in unique2 if w not in set1]

    differences = [
        Difference(type="removed", text=word) for word in only1[:MAX_LISTED_WORDS]
    ] + [
        Difference(type="added", text=word) for word in only2[:MAX_LISTED_WORDS]
    ]

    return ComparisonResult(
        similarity_score=len(common) / max(len(set1), len(set2), 1),
        differences=differences,
        common_clauses=[
            CommonClause(text=word, similarity=1.0) for word in common[:MAX_LISTED_WORDS]
        ],
        statistics=ComparisonStatistics(
            total_words=WordCounts(doc1=len(words1), doc2=len(words2)),
            unique_words=WordCounts(doc1=len(only1), doc2=len(only2)),
            common_words=len(common),
            length_difference=abs(len(words1) - len(words2)),
        ),
        source="lexical",
    )


# ---------------------------------------------------------------------
# AI payload normalization
# ---------------------------------------------------------------------

def _position(raw: Any) -> Position:
    if isinstance(raw, dict):
        return Position(start=int(raw.get("start", 0) or 0), end=int(raw.get("end", 0) or 0))
    return Position()


def _to_difference(item: Union[str, Dict[str, Any]]) -> Difference:
    if isinstance(item, str):
        return Difference(type="modified", text=item)

    kind = item.get("type")
    similarity = item.get("similarity")
    return Difference(
        type=kind if kind in _DIFFERENCE_TYPES else "modified",
        text=str(item.get("text") or item),
        position=_position(item.get("position")),
        similarity=float(similarity) if isinstance(similarity, (int, float)) else None,
    )


def _to_clause(item: Union[str, Dict[str, Any]]) -> CommonClause:
    if isinstance(item, str):
        return CommonClause(text=item)

    similarity = item.get("similarity")
    return CommonClause(
        text=str(item.get("text") or item),
        similarity=float(similarity) if isinstance(similarity, (int, float)) and similarity else 0.8,
        doc1_position=_position(item.get("doc1Position")),
        doc2_position=_position(item.get("doc2Position")),
    )


def merge_comparison(baseline: ComparisonResult, payload: ComparisonPayload) -> ComparisonResult:
    """Overlay AI fields on the baseline; missing AI fields keep the baseline."""
    return ComparisonResult(
        similarity_score=(
            payload.similarity_score
            if payload.similarity_score
            else baseline.similarity_score
        ),
        differences=(
            [_to_difference(item) for item in payload.differences]
            if payload.differences
            else baseline.differences
        ),
        common_clauses=(
            [_to_clause(item) for item in payload.common_clauses]
            if payload.common_clauses
            else baseline.common_clauses
        ),
        statistics=baseline.statistics,
        source="ai",
    )


# ---------------------------------------------------------------------
# Comparer
# ---------------------------------------------------------------------

class DocumentComparer:
    def __init__(self, chain: ProviderChain) -> None:
        self.chain = chain

    async def compare_documents(self, doc1: str, doc2: str) -> ComparisonResult:
        """
        Compare two texts. Never raises.
        """
        baseline = lexical_comparison(doc1 or "", doc2 or "")

        if not (doc1 and doc2) or not self.chain:
            return baseline

        try:
            completion = await self.chain.complete(
                COMPARISON_PROMPT.format(
                    doc1=doc1[:COMPARISON_MAX_CHARS],
                    doc2=doc2[:COMPARISON_MAX_CHARS],
                ),
                system=COMPARISON_SYSTEM_PROMPT,
                max_tokens=1000,
                temperature=0.3,
            )
        except GenerationError as exc:
            logger.warning("AI comparison failed, using lexical analysis: %s", exc)
            return baseline

        parsed = parse_response(completion.text, ComparisonPayload)
        if parsed.kind != "structured":
            logger.warning("Comparison response from %s was not valid JSON", completion.provider)
            return baseline

        try:
            return merge_comparison(baseline, parsed.data)
        except (ValueError, TypeError) as exc:
            logger.warning("Discarding malformed AI comparison: %s", exc)
            return baseline
