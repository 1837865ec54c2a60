"""Domain entities for the query path: retrieved chunks and assembled context."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .outcome import FailureCategory


class RetrievalSource(str, Enum):
    """Which search path produced a chunk."""

    VECTOR = "vector"
    KEYWORD = "keyword"


@dataclass
class RetrievedChunk:
    """A chunk returned by either search path, in one uniform shape."""

    title: str
    content: str
    source: RetrievalSource
    metadata: dict[str, Any] = field(default_factory=dict)
    resource_type: str | None = None
    filename: str | None = None
    distance: float | None = None  # only set by vector search


@dataclass
class ResolvedContext:
    """The textual context handed to the answer streamer."""

    context_text: str
    used_fallback: bool = False
    chunks: list[RetrievedChunk] = field(default_factory=list)
    failures: list[FailureCategory] = field(default_factory=list)
