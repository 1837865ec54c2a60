"""Abstract repository interface (port) for resources, chunks and search."""

from abc import ABC, abstractmethod

from bac_guide.domain.entities import Resource, ResourceChunk, RetrievedChunk


class KnowledgeStore(ABC):
    """Port for the persistent document/chunk repository."""

    @abstractmethod
    async def get_resource_by_filename(self, filename: str) -> Resource | None:
        ...

    @abstractmethod
    async def get_or_create_resource(self, resource: Resource) -> Resource:
        """Return the stored resource for ``resource.filename``, creating it if absent."""
        ...

    @abstractmethod
    async def list_resources(self) -> list[Resource]:
        ...

    @abstractmethod
    async def list_chunks(self, resource_id: str) -> list[ResourceChunk]:
        """Return a resource's chunks ordered by chunk index."""
        ...

    @abstractmethod
    async def replace_chunks(self, resource_id: str, chunks: list[ResourceChunk]) -> None:
        """Atomically swap a resource's chunk set for ``chunks``.

        Concurrent readers observe either the old or the new set, never a mix.

        Raises:
            EmbeddingDimensionError: If any chunk's vector has the wrong length.
        """
        ...

    @abstractmethod
    async def nearest_neighbors(
        self, query_embedding: list[float], k: int
    ) -> list[RetrievedChunk]:
        """Return up to ``k`` chunks by ascending vector distance.

        Raises:
            RetrievalFailure: If the vector index is unavailable or the
                query dimension does not match.
        """
        ...

    @abstractmethod
    async def text_search(self, text: str, k: int) -> list[RetrievedChunk]:
        """Return up to ``k`` chunks containing ``text`` (case-insensitive).

        Degraded fallback: results come in store order and carry no score.

        Raises:
            RetrievalFailure: If the store cannot be queried.
        """
        ...
