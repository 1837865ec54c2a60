"""SQLAlchemy implementation of KnowledgeStore (pgvector-powered vector search)."""

import logging

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bac_guide.application.interfaces.knowledge_store import KnowledgeStore
from bac_guide.domain.entities import (
    ChunkMetadata,
    Resource,
    ResourceChunk,
    ResourceType,
    RetrievalSource,
    RetrievedChunk,
)
from bac_guide.domain.exceptions import (
    EmbeddingDimensionError,
    KnowledgeStoreError,
    RetrievalFailure,
)
from bac_guide.infrastructure.database.models.resource_chunk_models import ResourceChunkModel
from bac_guide.infrastructure.database.models.resource_models import ResourceModel

logger = logging.getLogger(__name__)


def _to_resource(model: ResourceModel) -> Resource:
    return Resource(
        id=model.id,
        filename=model.filename,
        title=model.title,
        type=ResourceType(model.type),
        created_at=model.created_at,
    )


def _to_vector(value) -> list[float]:
    # pgvector hands back numpy arrays
    if value is None:
        return []
    return [float(v) for v in value]


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SQLAlchemyKnowledgeStore(KnowledgeStore):
    """Concrete knowledge store backed by PostgreSQL + pgvector.

    Every operation runs in its own session and transaction, so one store
    instance is safe to share between the ingestion pipeline and the
    request handlers.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._dimensions = ResourceChunkModel.__table__.c.embedding.type.dim

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _check_dimensions(self, vector: list[float]) -> None:
        if len(vector) != self._dimensions:
            raise EmbeddingDimensionError(self._dimensions, len(vector))

    # ── Resources ─────────────────────────────────────────────────────

    async def get_resource_by_filename(self, filename: str) -> Resource | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(ResourceModel).where(ResourceModel.filename == filename)
                )
                model = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise KnowledgeStoreError("get_resource_by_filename", str(exc)) from exc
        return _to_resource(model) if model else None

    async def get_or_create_resource(self, resource: Resource) -> Resource:
        """Return the resource for this filename, creating it if needed.

        A reused resource takes the type of the latest ingestion.
        """
        try:
            existing = await self.get_resource_by_filename(resource.filename)
            if existing:
                return await self._retype(existing, ResourceType(resource.type))

            model = ResourceModel(
                title=resource.title,
                type=ResourceType(resource.type).value,
                filename=resource.filename,
            )
            try:
                async with self._session_factory() as session, session.begin():
                    session.add(model)
                    await session.flush()
                    await session.refresh(model)
                    created = _to_resource(model)
            except IntegrityError:
                # Another writer inserted the same filename first.
                existing = await self.get_resource_by_filename(resource.filename)
                if existing is None:
                    raise
                return await self._retype(existing, ResourceType(resource.type))
        except SQLAlchemyError as exc:
            raise KnowledgeStoreError("get_or_create_resource", str(exc)) from exc

        logger.info("Created resource %s for %s", created.id, created.filename)
        return created

    async def _retype(self, resource: Resource, resource_type: ResourceType) -> Resource:
        if resource.type is resource_type:
            return resource
        async with self._session_factory() as session, session.begin():
            await session.execute(
                update(ResourceModel)
                .where(ResourceModel.id == resource.id)
                .values(type=resource_type.value)
            )
        logger.info(
            "Resource %s retyped from %s to %s",
            resource.filename, resource.type.value, resource_type.value,
        )
        resource.type = resource_type
        return resource

    async def list_resources(self) -> list[Resource]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(ResourceModel).order_by(ResourceModel.filename)
                )
                return [_to_resource(m) for m in result.scalars().all()]
        except SQLAlchemyError as exc:
            raise KnowledgeStoreError("list_resources", str(exc)) from exc

    # ── Chunks ────────────────────────────────────────────────────────

    async def list_chunks(self, resource_id: str) -> list[ResourceChunk]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(ResourceChunkModel)
                    .where(ResourceChunkModel.resource_id == resource_id)
                    .order_by(ResourceChunkModel.chunk_index)
                )
                models = result.scalars().all()
        except SQLAlchemyError as exc:
            raise KnowledgeStoreError("list_chunks", str(exc)) from exc

        return [
            ResourceChunk(
                id=m.id,
                resource_id=m.resource_id,
                chunk_index=m.chunk_index,
                content=m.content,
                embedding=_to_vector(m.embedding),
                metadata=ChunkMetadata.from_dict(m.metadata_ or {}),
                created_at=m.created_at,
            )
            for m in models
        ]

    async def replace_chunks(self, resource_id: str, chunks: list[ResourceChunk]) -> None:
        """Delete the resource's chunks and insert the new set in one transaction."""
        for chunk in chunks:
            self._check_dimensions(chunk.embedding)

        models = [
            ResourceChunkModel(
                resource_id=resource_id,
                chunk_index=chunk.chunk_index,
                content=chunk.content,
                embedding=chunk.embedding,
                metadata_=chunk.metadata.to_dict() if chunk.metadata else {},
            )
            for chunk in chunks
        ]

        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    delete(ResourceChunkModel).where(
                        ResourceChunkModel.resource_id == resource_id
                    )
                )
                session.add_all(models)
                await session.flush()
        except SQLAlchemyError as exc:
            raise KnowledgeStoreError("replace_chunks", str(exc)) from exc

        logger.info(
            "Replaced %d chunks with %d for resource %s",
            max(result.rowcount or 0, 0), len(models), resource_id,
        )

    # ── Search ────────────────────────────────────────────────────────

    def _search_query(self):
        return (
            select(
                ResourceChunkModel.content,
                ResourceChunkModel.metadata_.label("chunk_metadata"),
                ResourceModel.title,
                ResourceModel.type.label("resource_type"),
                ResourceModel.filename,
            )
            .select_from(ResourceChunkModel)
            .join(ResourceModel, ResourceModel.id == ResourceChunkModel.resource_id)
        )

    async def nearest_neighbors(
        self, query_embedding: list[float], k: int
    ) -> list[RetrievedChunk]:
        """Find the ``k`` chunks closest to the query by L2 distance."""
        try:
            self._check_dimensions(query_embedding)
        except EmbeddingDimensionError as exc:
            raise RetrievalFailure("nearest_neighbors", str(exc)) from exc

        distance = ResourceChunkModel.embedding.l2_distance(query_embedding)
        query = (
            self._search_query()
            .add_columns(distance.label("distance"))
            .order_by(distance)
            .limit(k)
        )

        try:
            async with self._session_factory() as session:
                rows = (await session.execute(query)).all()
        except SQLAlchemyError as exc:
            raise RetrievalFailure("nearest_neighbors", str(exc)) from exc

        return [
            RetrievedChunk(
                title=row.title,
                content=row.content,
                source=RetrievalSource.VECTOR,
                metadata=row.chunk_metadata or {},
                resource_type=row.resource_type,
                filename=row.filename,
                distance=float(row.distance),
            )
            for row in rows
        ]

    async def text_search(self, text: str, k: int) -> list[RetrievedChunk]:
        """Case-insensitive substring match on chunk content."""
        query = (
            self._search_query()
            .where(ResourceChunkModel.content.ilike(_like_pattern(text), escape="\\"))
            .limit(k)
        )

        try:
            async with self._session_factory() as session:
                rows = (await session.execute(query)).all()
        except SQLAlchemyError as exc:
            raise RetrievalFailure("text_search", str(exc)) from exc

        return [
            RetrievedChunk(
                title=row.title,
                content=row.content,
                source=RetrievalSource.KEYWORD,
                metadata=row.chunk_metadata or {},
                resource_type=row.resource_type,
                filename=row.filename,
            )
            for row in rows
        ]
