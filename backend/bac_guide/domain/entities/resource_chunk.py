"""Domain entity for resource chunks: text fragments with vector embeddings."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass
class ChunkMetadata:
    """Bookkeeping stored alongside every chunk."""

    chunk_index: int
    total_chunks: int
    source_file: str
    text_length: int  # UTF-8 byte length of the content
    processing_date: str  # ISO 8601, UTC

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChunkMetadata":
        return cls(
            chunk_index=int(data.get("chunk_index", 0)),
            total_chunks=int(data.get("total_chunks", 0)),
            source_file=str(data.get("source_file", "")),
            text_length=int(data.get("text_length", 0)),
            processing_date=str(data.get("processing_date", "")),
        )


@dataclass
class ResourceChunk:
    """A text chunk from an ingested resource, suitable for vector search.

    Chunks of one resource are numbered 0..N-1 in source order and are
    never mutated once written; re-ingestion replaces the whole set.
    """

    resource_id: str
    chunk_index: int
    content: str
    embedding: list[float] = field(default_factory=list)
    metadata: ChunkMetadata | None = None
    id: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
