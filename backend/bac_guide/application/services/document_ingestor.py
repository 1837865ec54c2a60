"""Document ingestion: extract, chunk, embed and upsert source documents.

Pipeline per file:
    Extract Text → Chunk → Embed (one chunk at a time, throttled) → Replace Chunks

Ingestion is deliberately sequential. Embedding calls are spaced by a fixed
delay plus a longer pause every Nth call to stay within the provider's rate
limit; do not parallelize them without re-deriving that budget.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from numbers import Real
from pathlib import Path

from bac_guide.application.interfaces import (
    EmbeddingProvider,
    KnowledgeStore,
    TextExtractor,
)
from bac_guide.application.services.text_chunker import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MIN_CHUNK_CHARS,
    chunk_text,
)
from bac_guide.domain.entities import (
    BatchSummary,
    ChunkMetadata,
    FailureCategory,
    IngestionResult,
    Outcome,
    Resource,
    ResourceChunk,
    ResourceType,
)
from bac_guide.domain.exceptions import (
    EmbeddingDimensionError,
    EmbeddingFailure,
    ExtractionFailure,
    KnowledgeStoreError,
)
from bac_guide.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)
plog = PipelineLogger("DocumentIngestor")

Sleep = Callable[[float], Awaitable[None]]


class DocumentIngestor:
    """Application service that turns source documents into embedded chunks.

    Re-ingesting a filename reuses its resource and swaps the whole chunk
    set in one store transaction. Ingestions of the same filename are queued
    behind a per-filename lock; different filenames do not block each other.
    """

    def __init__(
        self,
        knowledge_store: KnowledgeStore,
        embedding_provider: EmbeddingProvider,
        text_extractor: TextExtractor,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        min_chunk_chars: int = DEFAULT_MIN_CHUNK_CHARS,
        embedding_delay_seconds: float = 0.1,
        embedding_pause_every: int = 10,
        embedding_pause_seconds: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ):
        self._store = knowledge_store
        self._embedder = embedding_provider
        self._extractor = text_extractor
        self._chunk_size = chunk_size
        self._min_chunk_chars = min_chunk_chars
        self._delay = embedding_delay_seconds
        self._pause_every = embedding_pause_every
        self._pause = embedding_pause_seconds
        self._sleep = sleep
        self._embedding_calls = 0
        self._locks: dict[str, asyncio.Lock] = {}

    # ── Public API ───────────────────────────────────────────────────

    async def ingest(
        self, file_path: str, declared_type: ResourceType | None = None
    ) -> IngestionResult:
        """Ingest one document. Never raises for per-file failures."""
        filename = Path(file_path).name
        resource_type = declared_type or ResourceType.from_filename(filename)

        lock = self._locks.setdefault(filename, asyncio.Lock())
        if lock.locked():
            plog.detail(f"Waiting for in-flight ingestion of '{filename}'")

        async with lock:
            start = time.monotonic()
            plog.separator(f"Ingesting: {filename}")
            result = await self._ingest_file(file_path, filename, resource_type)
            plog.stats(
                file=filename,
                success=result.success,
                chunks=f"{result.processed_chunk_count}/{result.total_chunk_count}",
                duration_ms=int((time.monotonic() - start) * 1000),
            )
            return result

    async def ingest_directory(self, directory: str) -> BatchSummary:
        """Ingest every supported file of ``directory`` in filename order.

        A missing directory is created empty and yields an empty summary.
        """
        path = Path(directory)
        summary = BatchSummary()

        if not path.is_dir():
            path.mkdir(parents=True, exist_ok=True)
            plog.warning(
                PipelineStage.PIPELINE,
                f"Documents directory did not exist, created empty: {path}",
            )
            return summary

        files = sorted(
            (p for p in path.iterdir() if p.is_file() and self._extractor.supports(str(p))),
            key=lambda p: p.name,
        )
        plog.step_start(PipelineStage.PIPELINE, f"Batch ingestion of {len(files)} file(s)", directory=str(path))

        for file in files:
            result = await self.ingest(str(file), ResourceType.from_filename(file.name))
            summary.add(result)

        plog.step_complete(PipelineStage.COMPLETE, "Batch ingestion finished", **summary.as_dict())
        return summary

    # ── Internal Pipeline ────────────────────────────────────────────

    async def _ingest_file(
        self, file_path: str, filename: str, resource_type: ResourceType
    ) -> IngestionResult:
        # Step 1: Extract text
        plog.step_start(PipelineStage.TEXT_EXTRACTION, f"Reading '{filename}'", type=resource_type.value)
        try:
            text = await self._extractor.extract_text(file_path)
        except ExtractionFailure as e:
            plog.step_error(PipelineStage.TEXT_EXTRACTION, f"Extraction failed for '{filename}'", error=e)
            return IngestionResult.failed(filename, f"no text extracted: {e.reason}")

        if not text or not text.strip():
            plog.warning(PipelineStage.TEXT_EXTRACTION, f"No text extracted from '{filename}'")
            return IngestionResult.failed(filename, "no text extracted")
        plog.detail("Text extracted", characters=len(text))

        # Step 2: Chunk
        pieces = chunk_text(text, self._chunk_size, self._min_chunk_chars)
        total = len(pieces)
        plog.step_complete(PipelineStage.CHUNKING, f"Split into {total} chunk(s)", max_chars=self._chunk_size)
        if not pieces:
            return IngestionResult.failed(filename, "no chunks produced")

        # Step 3: Embed, one chunk at a time
        plog.step_start(PipelineStage.EMBEDDING, f"Embedding {total} chunk(s)")
        embedded: list[tuple[str, list[float]]] = []
        for index, piece in enumerate(pieces):
            outcome = await self._embed_chunk(piece)
            if not outcome.ok:
                plog.warning(
                    PipelineStage.EMBEDDING,
                    f"Skipping chunk {index + 1}/{total} of '{filename}'",
                    reason=outcome.error,
                )
                continue
            embedded.append((piece, outcome.value))

        if not embedded:
            plog.step_error(PipelineStage.EMBEDDING, f"No chunk of '{filename}' could be embedded")
            return IngestionResult.failed(filename, "no chunks embedded", total_chunk_count=total)

        # Step 4: Upsert resource and swap its chunk set
        try:
            resource = await self._store.get_or_create_resource(
                Resource.for_file(file_path, resource_type)
            )
            assert resource.id is not None
            chunks = self._build_chunks(resource.id, filename, embedded)
            with plog.timed_step(PipelineStage.STORAGE, f"Replacing chunks of '{filename}'", chunks=len(chunks)):
                await self._store.replace_chunks(resource.id, chunks)
        except (KnowledgeStoreError, EmbeddingDimensionError) as e:
            logger.error("Could not persist chunks for %s: %s", filename, e)
            return IngestionResult.failed(filename, f"storage failed: {e}", total_chunk_count=total)

        plog.step_complete(
            PipelineStage.COMPLETE,
            f"Ingested '{filename}'",
            resource_id=resource.id,
            persisted=len(chunks),
            skipped=total - len(chunks),
        )
        return IngestionResult(
            filename=filename,
            success=True,
            processed_chunk_count=len(chunks),
            total_chunk_count=total,
            resource_id=resource.id,
        )

    async def _embed_chunk(self, text: str) -> Outcome[list[float]]:
        """Request one embedding, then apply the rate-limit delay."""
        try:
            vector = await self._embedder.embed(text)
        except EmbeddingFailure as e:
            outcome: Outcome[list[float]] = Outcome.failure(FailureCategory.EMBEDDING, str(e))
        else:
            outcome = self._check_vector(vector)
        await self._throttle()
        return outcome

    def _check_vector(self, vector: object) -> Outcome[list[float]]:
        if not isinstance(vector, (list, tuple)) or not vector:
            return Outcome.failure(FailureCategory.EMBEDDING, "empty embedding")
        if not all(isinstance(v, Real) and not isinstance(v, bool) for v in vector):
            return Outcome.failure(FailureCategory.EMBEDDING, "malformed embedding")
        if len(vector) != self._embedder.dimensions:
            return Outcome.failure(
                FailureCategory.EMBEDDING,
                str(EmbeddingDimensionError(self._embedder.dimensions, len(vector))),
            )
        return Outcome.success([float(v) for v in vector])

    async def _throttle(self) -> None:
        self._embedding_calls += 1
        if self._delay > 0:
            await self._sleep(self._delay)
        if self._pause_every > 0 and self._embedding_calls % self._pause_every == 0:
            await self._sleep(self._pause)

    @staticmethod
    def _build_chunks(
        resource_id: str, filename: str, embedded: list[tuple[str, list[float]]]
    ) -> list[ResourceChunk]:
        """Number persisted chunks 0..N-1 so ordinals stay contiguous after skips."""
        processed_at = datetime.now(timezone.utc).isoformat()
        total = len(embedded)
        return [
            ResourceChunk(
                resource_id=resource_id,
                chunk_index=index,
                content=content,
                embedding=vector,
                metadata=ChunkMetadata(
                    chunk_index=index,
                    total_chunks=total,
                    source_file=filename,
                    text_length=len(content.encode("utf-8")),
                    processing_date=processed_at,
                ),
            )
            for index, (content, vector) in enumerate(embedded)
        ]
