"""
Document Chunker

Splits raw extracted document text into overlapping, sentence-respecting
segments suitable for embedding.

Algorithm
---------
- Sentences are delimited by runs of ``.``, ``!`` and ``?``.
- Sentences are accumulated greedily into a buffer; when the next sentence
  would push the buffer past ``chunk_size`` characters, the buffer is
  flushed as one chunk terminated with a period.
- When ``overlap`` is positive, the buffer that follows a flush is seeded
  with the last ``overlap // 10`` words of the previous chunk. The overlap
  parameter is expressed in characters and converted to words with this
  coarse ratio; a ratio that rounds down to zero words seeds the entire
  previous chunk.
- A single sentence longer than ``chunk_size`` is emitted as its own chunk
  and is never truncated.

The module also hosts the light text statistics used alongside indexing
(word counts, keyword extraction, language detection).
"""

from __future__ import annotations

import re
from collections import Counter
from typing import List

_SENTENCE_BOUNDARY = re.compile(r"[.!?]+")
_NON_WORD = re.compile(r"[^\w\s]")

# Approximate characters per word used to turn the overlap into a word count
_CHARS_PER_OVERLAP_WORD = 10

STOP_WORDS = frozenset({
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "from", "up", "about", "into", "over", "after", "beneath", "under", "above",
    "this", "that", "these", "those", "will", "shall", "may", "can", "must",
    "have", "has", "had", "been", "being", "are", "was", "were", "is", "am",
})

_ENGLISH_MARKERS = ("the", "and", "of", "to", "a", "in", "is", "it", "you", "that")


# ---------------------------------------------------------------------
# Chunking
# ---------------------------------------------------------------------

def split_sentences(text: str) -> List[str]:
    """
    Return the stripped, non-empty sentences of ``text`` in document order.
    """
    return [s.strip() for s in _SENTENCE_BOUNDARY.split(text) if s.strip()]


def _overlap_seed(previous_chunk: str, overlap: int) -> str:
    word_count = overlap // _CHARS_PER_OVERLAP_WORD
    words = previous_chunk.split(" ")
    # an overlap under ten characters carries the whole previous chunk forward
    return " ".join(words[-word_count:] if word_count else words)


def chunk_text(text: str, chunk_size: int = 1000, overlap: int = 200) -> List[str]:
    """
    Split text into overlapping chunks of roughly ``chunk_size`` characters.

    Parameters
    ----------
    text : str
        Raw document text.

    chunk_size : int
        Character budget for a chunk's sentence content.

    overlap : int
        Character overlap between consecutive chunks. Converted to
        ``overlap // 10`` trailing words of the previous chunk.

    Returns
    -------
    List[str]
        Chunks in left-to-right document order, each ending with ``"."``.

    Raises
    ------
    ValueError
        If ``chunk_size`` is not positive or ``overlap`` is negative.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive.")
    if overlap < 0:
        raise ValueError("overlap must not be negative.")

    chunks: List[str] = []
    buffer = ""

    for sentence in split_sentences(text):
        if len(buffer) + len(sentence) <= chunk_size:
            buffer = f"{buffer}. {sentence}" if buffer else sentence
            continue

        if buffer:
            chunks.append(buffer + ".")

        seed = _overlap_seed(chunks[-1], overlap) if chunks and overlap > 0 else ""
        buffer = f"{seed} {sentence}" if seed else sentence

    if buffer:
        chunks.append(buffer + ".")

    return [chunk for chunk in chunks if chunk.strip()]


# ---------------------------------------------------------------------
# Text statistics
# ---------------------------------------------------------------------

def count_words(text: str) -> int:
    """Number of whitespace-separated tokens in ``text``."""
    return len(text.split())


def extract_keywords(text: str, limit: int = 20) -> List[str]:
    """
    Return the most frequent non-stop-words longer than three characters.

    Ties keep first-occurrence order.
    """
    words = [
        word
        for word in _NON_WORD.sub(" ", text.lower()).split()
        if len(word) > 3 and word not in STOP_WORDS
    ]
    return [word for word, _ in Counter(words).most_common(limit)]


def detect_language(text: str) -> str:
    """
    Very small heuristic: ``"en"`` if common English words dominate the
    first 1000 characters, otherwise ``"unknown"``.
    """
    sample = text[:1000].lower()
    hits = sum(sample.count(marker) for marker in _ENGLISH_MARKERS)
    return "en" if hits > 10 else "unknown"
