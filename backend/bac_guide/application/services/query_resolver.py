"""Query resolution: turn a question into the context block for generation.

Fallback chain, each step yielding an explicit Outcome:
    question embedding → vector search → keyword search → placeholder context
"""

import logging

from bac_guide.application.interfaces import EmbeddingProvider, KnowledgeStore
from bac_guide.application.prompts import CONTEXT_SEPARATOR, NO_CONTEXT_PLACEHOLDER
from bac_guide.domain.entities import (
    FailureCategory,
    Outcome,
    ResolvedContext,
    RetrievedChunk,
)
from bac_guide.domain.exceptions import EmbeddingFailure, RetrievalFailure
from bac_guide.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)
plog = PipelineLogger("QueryResolver")

DEFAULT_TOP_K = 5


def assemble_context(chunks: list[RetrievedChunk]) -> str:
    """Format retrieved chunks for the system prompt; never returns an empty string."""
    if not chunks:
        return NO_CONTEXT_PLACEHOLDER
    return CONTEXT_SEPARATOR.join(
        f"Document: {chunk.title or 'Document'}\nContent: {chunk.content}"
        for chunk in chunks
    )


class QueryResolver:
    """Application service that retrieves context for a question.

    Never raises for embedding or retrieval failures: the worst case is the
    placeholder context, so the answer step always has a well-formed prompt.
    """

    def __init__(
        self,
        knowledge_store: KnowledgeStore,
        embedding_provider: EmbeddingProvider,
        *,
        top_k: int = DEFAULT_TOP_K,
    ):
        self._store = knowledge_store
        self._embedder = embedding_provider
        self._top_k = top_k

    async def resolve(self, question: str) -> ResolvedContext:
        failures: list[FailureCategory] = []
        chunks: list[RetrievedChunk] = []
        used_fallback = False

        embedding = await self._embed_question(question)
        if embedding.ok:
            vector_hits = await self._vector_search(embedding.value or [])
            if vector_hits.ok:
                chunks = vector_hits.value or []
            else:
                failures.append(FailureCategory.STORE)
        else:
            failures.append(FailureCategory.EMBEDDING)

        if not chunks:
            used_fallback = True
            keyword_hits = await self._keyword_search(question)
            if keyword_hits.ok:
                chunks = keyword_hits.value or []
            else:
                failures.append(FailureCategory.STORE)

        plog.step_complete(
            PipelineStage.RETRIEVAL,
            f"Context assembled from {len(chunks)} chunk(s)",
            path="keyword" if used_fallback else "vector",
            failures=",".join(f.value for f in failures) or "none",
        )
        return ResolvedContext(
            context_text=assemble_context(chunks),
            used_fallback=used_fallback,
            chunks=chunks,
            failures=failures,
        )

    # ── Steps ────────────────────────────────────────────────────────

    async def _embed_question(self, question: str) -> Outcome[list[float]]:
        try:
            vector = await self._embedder.embed_query(question)
        except EmbeddingFailure as e:
            plog.warning(PipelineStage.EMBEDDING, "Question embedding failed, continuing without it", reason=e.message)
            return Outcome.failure(FailureCategory.EMBEDDING, str(e))
        if not vector:
            plog.warning(PipelineStage.EMBEDDING, "Question embedding was empty, continuing without it")
            return Outcome.failure(FailureCategory.EMBEDDING, "empty embedding")
        return Outcome.success(vector)

    async def _vector_search(self, vector: list[float]) -> Outcome[list[RetrievedChunk]]:
        try:
            hits = await self._store.nearest_neighbors(vector, self._top_k)
        except RetrievalFailure as e:
            plog.warning(PipelineStage.RETRIEVAL, "Vector search failed, falling back to keyword search", reason=e.message)
            return Outcome.failure(FailureCategory.STORE, str(e))
        plog.detail("Vector search", hits=len(hits))
        return Outcome.success(hits)

    async def _keyword_search(self, question: str) -> Outcome[list[RetrievedChunk]]:
        try:
            hits = await self._store.text_search(question, self._top_k)
        except RetrievalFailure as e:
            plog.warning(PipelineStage.RETRIEVAL, "Keyword search failed, using placeholder context", reason=e.message)
            return Outcome.failure(FailureCategory.STORE, str(e))
        plog.detail("Keyword search", hits=len(hits))
        return Outcome.success(hits)
