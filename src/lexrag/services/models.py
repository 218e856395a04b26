"""
Service Result Models

Pydantic models for everything the answering, analysis and comparison
services return, plus the lenient payload schemas used to validate raw
provider JSON.

Design Goals
------------
- Provider output is validated, never trusted
- Result objects are always well-formed, even when degraded
- Degraded results are marked with low confidence
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, ConfigDict


# ---------------------------------------------------------------------
# Chat / Answering
# ---------------------------------------------------------------------

class Citation(BaseModel):
    """
    Reference from an answer back to a retrieved chunk.

    ``source`` is a 1-based display label while ``chunk_index`` stays 0-based.
    """
    chunk_index: int = Field(..., ge=0)
    text: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    source: str


class AssistantReply(BaseModel):
    content: str
    citations: List[Citation] = Field(default_factory=list)
    confidence: float = Field(..., ge=0.0, le=1.0)
    metadata: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------
# Document Analysis
# ---------------------------------------------------------------------

class Entity(BaseModel):
    text: str
    type: str = "unknown"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class AnalysisPayload(BaseModel):
    """Expected shape of a provider's analysis JSON."""
    summary: Optional[str] = None
    key_points: List[str] = Field(default_factory=list, alias="keyPoints")
    entities: List[Entity] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class AnalysisResult(BaseModel):
    summary: str
    key_points: List[str] = Field(default_factory=list)
    entities: List[Entity] = Field(default_factory=list)
    confidence: float = Field(..., ge=0.0, le=1.0)
    processing_time_ms: int = Field(default=0, ge=0)
    provider: Optional[str] = None


# ---------------------------------------------------------------------
# Document Comparison
# ---------------------------------------------------------------------

class Position(BaseModel):
    start: int = 0
    end: int = 0


class Difference(BaseModel):
    type: Literal["added", "removed", "modified"] = "modified"
    text: str
    position: Position = Field(default_factory=Position)
    similarity: Optional[float] = None


class CommonClause(BaseModel):
    text: str
    similarity: float = 0.8
    doc1_position: Position = Field(default_factory=Position)
    doc2_position: Position = Field(default_factory=Position)


class WordCounts(BaseModel):
    doc1: int = Field(..., ge=0)
    doc2: int = Field(..., ge=0)


class ComparisonStatistics(BaseModel):
    total_words: WordCounts
    unique_words: WordCounts
    common_words: int = Field(..., ge=0)
    length_difference: int = Field(..., ge=0)


class ComparisonResult(BaseModel):
    similarity_score: float = Field(..., ge=0.0, le=1.0)
    differences: List[Difference] = Field(default_factory=list)
    common_clauses: List[CommonClause] = Field(default_factory=list)
    statistics: ComparisonStatistics
    source: Literal["ai", "lexical"] = "lexical"


class ComparisonPayload(BaseModel):
    """
    Expected shape of a provider's comparison JSON.

    Differences and clauses may arrive as bare strings or as objects.
    """
    similarity_score: Optional[float] = Field(
        default=None, ge=0.0, le=1.0, alias="similarityScore"
    )
    differences: Optional[List[Union[str, Dict[str, Any]]]] = None
    common_clauses: Optional[List[Union[str, Dict[str, Any]]]] = Field(
        default=None, alias="commonClauses"
    )
    changes: List[Any] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)
