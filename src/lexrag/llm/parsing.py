"""
Provider Response Parsing

Provider output is loosely structured text that *usually* contains JSON.
It is decoded into a tagged union:

- StructuredResponse: JSON that validated against the expected model
- RawTextResponse:    anything else, kept verbatim for degraded use

Parsing never raises; callers branch on ``kind``.
"""

from __future__ import annotations

import re
from typing import Generic, Literal, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

T = TypeVar("T", bound=BaseModel)

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


class StructuredResponse(BaseModel, Generic[T]):
    kind: Literal["structured"] = "structured"
    data: T


class RawTextResponse(BaseModel):
    kind: Literal["raw"] = "raw"
    text: str


ParsedResponse = Union[StructuredResponse[T], RawTextResponse]


def strip_code_fence(text: str) -> str:
    """Remove a surrounding Markdown code fence, if any."""
    stripped = text.strip()
    match = _FENCE.match(stripped)
    return match.group(1) if match else stripped


def parse_response(text: str, model: Type[T]) -> ParsedResponse:
    """
    Decode ``text`` as JSON and validate it against ``model``.

    Returns a StructuredResponse on success and a RawTextResponse on any
    decoding or validation failure.
    """
    try:
        data = model.model_validate_json(strip_code_fence(text))
    except ValidationError:
        return RawTextResponse(text=text)
    return StructuredResponse[model](data=data)
