"""
Sentence-aware text chunking.

Splits document text into bounded units of translation work while keeping
sentences whole.
"""

from __future__ import annotations

import math
import re

# A run of non-terminators closed by a run of terminators (or the end of
# the text), or a bare run of terminators. Together the matches cover the
# whole input, so nothing is lost between sentences.
_SENTENCE_RE = re.compile(r"[^.!?]+(?:[.!?]+|$)|[.!?]+")


def split_sentences(text: str) -> list[str]:
    """Split text into raw sentence pieces, keeping terminators and spacing."""
    return _SENTENCE_RE.findall(text)


def split_into_chunks(text: str, max_chunk_chars: int) -> list[str]:
    """
    Split text into chunks of at most ``max_chunk_chars`` characters.

    Sentences are accumulated into a buffer; when appending the next
    sentence would overflow the limit, the buffer is closed as a chunk and
    the sentence starts a new one. A single sentence longer than the limit
    is emitted whole, so the bound is best-effort.

    Args:
        text: Plain document text.
        max_chunk_chars: Soft upper bound for a chunk, in characters.

    Returns:
        Ordered list of non-empty, stripped chunks. Deterministic for a
        given input.
    """
    if max_chunk_chars < 1:
        raise ValueError(f"max_chunk_chars must be positive, got {max_chunk_chars}")

    chunks: list[str] = []
    buffer = ""

    for sentence in split_sentences(text):
        if buffer.strip() and len((buffer + sentence).strip()) > max_chunk_chars:
            chunks.append(buffer.strip())
            buffer = sentence
        else:
            buffer += sentence

    if buffer.strip():
        chunks.append(buffer.strip())

    return chunks


def estimate_tokens(text: str) -> int:
    """Rough token count (1 token ~ 4 characters). Progress hint only."""
    return math.ceil(len(text) / 4)
