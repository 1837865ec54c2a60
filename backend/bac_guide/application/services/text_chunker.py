"""Sentence-aware text chunking for the ingestion pipeline.

The output is a pure function of the text and the bounds, so re-ingesting
an unchanged document always produces the same chunk sequence.
"""

import re

DEFAULT_CHUNK_SIZE = 500
DEFAULT_MIN_CHUNK_CHARS = 20

_WHITESPACE = re.compile(r"\s+")
# Split after terminal punctuation; the punctuation stays with its sentence.
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def split_sentences(text: str) -> list[str]:
    """Normalize whitespace and split into sentence-like units."""
    normalized = _WHITESPACE.sub(" ", text).strip()
    if not normalized:
        return []
    return [s for s in _SENTENCE_BOUNDARY.split(normalized) if s]


def chunk_text(
    text: str,
    max_chars: int = DEFAULT_CHUNK_SIZE,
    min_chars: int = DEFAULT_MIN_CHUNK_CHARS,
) -> list[str]:
    """Greedily pack whole sentences into chunks of at most ``max_chars``.

    A chunk is closed when the next sentence would push it past
    ``max_chars``; chunks shorter than ``min_chars`` are dropped. A single
    sentence longer than ``max_chars`` becomes a chunk on its own.
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")

    chunks: list[str] = []
    current = ""

    for sentence in split_sentences(text):
        candidate = f"{current} {sentence}" if current else sentence
        if len(candidate) > max_chars and current:
            if len(current) >= min_chars:
                chunks.append(current)
            current = sentence
        else:
            current = candidate

    if current and len(current) >= min_chars:
        chunks.append(current)

    return chunks
