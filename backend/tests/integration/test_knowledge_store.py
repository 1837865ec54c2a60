"""Integration tests for SQLAlchemyKnowledgeStore on a throwaway SQLite database.

SQLite has no pgvector operators, so nearest-neighbour search is only
exercised for its failure path here.
"""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from bac_guide.domain.entities import (
    ChunkMetadata,
    Resource,
    ResourceChunk,
    ResourceType,
    RetrievalSource,
)
from bac_guide.domain.exceptions import (
    EmbeddingDimensionError,
    KnowledgeStoreError,
    RetrievalFailure,
)
from bac_guide.infrastructure.database.models import EMBEDDING_DIMENSIONS
from bac_guide.infrastructure.database.repositories import SQLAlchemyKnowledgeStore
from bac_guide.infrastructure.database.session import create_session_factory, init_schema


def _vector(position: int) -> list[float]:
    vector = [0.0] * EMBEDDING_DIMENSIONS
    vector[position] = 1.0
    return vector


def _chunk(resource_id: str, index: int, total: int, content: str) -> ResourceChunk:
    return ResourceChunk(
        resource_id=resource_id,
        chunk_index=index,
        content=content,
        embedding=_vector(index),
        metadata=ChunkMetadata(
            chunk_index=index,
            total_chunks=total,
            source_file="guide_2024.pdf",
            text_length=len(content.encode("utf-8")),
            processing_date="2024-07-01T10:00:00+00:00",
        ),
    )


@pytest.fixture
async def store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'knowledge.db'}")
    await init_schema(engine)
    yield SQLAlchemyKnowledgeStore(create_session_factory(engine))
    await engine.dispose()


async def _guide(store: SQLAlchemyKnowledgeStore, filename: str = "guide_2024.pdf") -> Resource:
    return await store.get_or_create_resource(
        Resource.for_file(f"/docs/{filename}", ResourceType.from_filename(filename))
    )


# ── Resources ──


@pytest.mark.asyncio
async def test_get_or_create_is_idempotent(store):
    first = await _guide(store)
    second = await _guide(store)

    assert first.id is not None
    assert second.id == first.id
    assert first.title == "guide_2024"
    assert first.type is ResourceType.GUIDE
    assert [r.filename for r in await store.list_resources()] == ["guide_2024.pdf"]


@pytest.mark.asyncio
async def test_get_or_create_recovers_from_unique_conflict(store, monkeypatch):
    existing = await _guide(store, "scores_2024.pdf")
    original_lookup = store.get_resource_by_filename
    lookups = []

    async def stale_lookup(filename):
        lookups.append(filename)
        if len(lookups) == 1:
            return None  # another writer has not committed yet, as far as we saw
        return await original_lookup(filename)

    monkeypatch.setattr(store, "get_resource_by_filename", stale_lookup)

    resource = await _guide(store, "scores_2024.pdf")

    assert resource.id == existing.id
    assert resource.type is ResourceType.SCORE
    assert len(lookups) == 2


@pytest.mark.asyncio
async def test_reuse_with_declared_type_updates_the_resource(store):
    original = await _guide(store, "orientation.pdf")

    retyped = await store.get_or_create_resource(
        Resource.for_file("/docs/orientation.pdf", ResourceType.SCORE)
    )

    assert original.type is ResourceType.GUIDE
    assert retyped.id == original.id
    assert retyped.type is ResourceType.SCORE
    stored = await store.get_resource_by_filename("orientation.pdf")
    assert stored.type is ResourceType.SCORE


@pytest.mark.asyncio
async def test_unknown_filename_returns_none(store):
    assert await store.get_resource_by_filename("absent.pdf") is None


# ── Chunks ──


@pytest.mark.asyncio
async def test_replace_chunks_round_trips_metadata_and_vectors(store):
    resource = await _guide(store)
    chunks = [_chunk(resource.id, i, 2, f"Contenu {i}.") for i in range(2)]

    await store.replace_chunks(resource.id, chunks)
    stored = await store.list_chunks(resource.id)

    assert [c.chunk_index for c in stored] == [0, 1]
    assert stored[1].content == "Contenu 1."
    assert stored[1].metadata == chunks[1].metadata
    assert len(stored[0].embedding) == EMBEDDING_DIMENSIONS
    assert stored[0].embedding[0] == 1.0


@pytest.mark.asyncio
async def test_replace_chunks_swaps_the_whole_set(store):
    resource = await _guide(store)
    await store.replace_chunks(resource.id, [_chunk(resource.id, i, 3, f"Ancien {i}.") for i in range(3)])

    await store.replace_chunks(resource.id, [_chunk(resource.id, 0, 1, "Nouveau.")])

    stored = await store.list_chunks(resource.id)
    assert [c.content for c in stored] == ["Nouveau."]


@pytest.mark.asyncio
async def test_failed_replace_keeps_previous_set(store):
    resource = await _guide(store)
    await store.replace_chunks(resource.id, [_chunk(resource.id, 0, 1, "Ancien.")])
    duplicate_positions = [_chunk(resource.id, 0, 2, "A."), _chunk(resource.id, 0, 2, "B.")]

    with pytest.raises(KnowledgeStoreError):
        await store.replace_chunks(resource.id, duplicate_positions)

    assert [c.content for c in await store.list_chunks(resource.id)] == ["Ancien."]


@pytest.mark.asyncio
async def test_replace_rejects_wrong_dimension(store):
    resource = await _guide(store)
    bad = _chunk(resource.id, 0, 1, "Texte.")
    bad.embedding = [0.1, 0.2]

    with pytest.raises(EmbeddingDimensionError) as exc_info:
        await store.replace_chunks(resource.id, [bad])

    assert exc_info.value.actual == 2
    assert await store.list_chunks(resource.id) == []


# ── Search ──


@pytest.mark.asyncio
async def test_text_search_is_case_insensitive_and_joined(store):
    guide = await _guide(store)
    scores = await _guide(store, "scores_2024.pdf")
    await store.replace_chunks(guide.id, [_chunk(guide.id, 0, 1, "La filiere Informatique recrute.")])
    await store.replace_chunks(scores.id, [_chunk(scores.id, 0, 1, "Score informatique: 160.")])

    hits = await store.text_search("INFORMATIQUE", 5)

    assert {h.filename for h in hits} == {"guide_2024.pdf", "scores_2024.pdf"}
    assert all(h.source is RetrievalSource.KEYWORD for h in hits)
    assert all(h.distance is None for h in hits)
    by_file = {h.filename: h for h in hits}
    assert by_file["scores_2024.pdf"].resource_type == "score"
    assert by_file["scores_2024.pdf"].title == "scores_2024"
    assert by_file["guide_2024.pdf"].metadata["total_chunks"] == 1


@pytest.mark.asyncio
async def test_text_search_respects_limit_and_literal_wildcards(store):
    guide = await _guide(store)
    await store.replace_chunks(
        guide.id,
        [_chunk(guide.id, i, 4, f"Taux de reussite {i}0% cette annee.") for i in range(4)],
    )

    assert len(await store.text_search("reussite", 2)) == 2
    assert await store.text_search("0_", 5) == []
    assert len(await store.text_search("0%", 5)) == 4


@pytest.mark.asyncio
async def test_text_search_without_match(store):
    assert await store.text_search("médecine", 5) == []


@pytest.mark.asyncio
async def test_nearest_neighbors_rejects_wrong_dimension(store):
    with pytest.raises(RetrievalFailure, match="dimensions"):
        await store.nearest_neighbors([0.1, 0.2, 0.3], 5)


@pytest.mark.asyncio
async def test_nearest_neighbors_without_vector_index_fails_as_retrieval(store):
    with pytest.raises(RetrievalFailure):
        await store.nearest_neighbors(_vector(0), 5)
