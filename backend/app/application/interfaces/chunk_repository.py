"""Abstract repository interface (port) for resource chunks and vector search."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.domain.entities.resource_chunk import ResourceChunk


@dataclass
class VectorSearchResult:
    """A single result from a vector similarity search."""

    chunk: ResourceChunk
    similarity: float  # cosine similarity, 1.0 = identical direction
    resource_id: str
    resource_title: str
    media_type: str | None = None
    module_id: str | None = None


class ChunkRepository(ABC):
    """Port for resource chunk persistence and vector search."""

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Vector width every stored chunk must have."""
        ...

    @abstractmethod
    async def replace_chunks(self, resource_id: str, chunks: list[ResourceChunk]) -> int:
        """Atomically swap a resource's chunk set for ``chunks``.

        Either the whole new set is stored or the previous set is left
        untouched. An empty list is a valid replacement.

        Returns:
            Number of chunks now stored for the resource.

        Raises:
            StorageError: if the swap could not be committed.
        """
        ...

    @abstractmethod
    async def delete_by_resource(self, resource_id: str) -> int:
        """Delete all chunks for a resource. Returns count of deleted rows."""
        ...

    @abstractmethod
    async def get_by_resource(self, resource_id: str) -> list[ResourceChunk]:
        """Return a resource's chunks ordered by chunk index."""
        ...

    @abstractmethod
    async def count_by_resource(self, resource_id: str) -> int:
        """Return how many chunks a resource currently has."""
        ...

    @abstractmethod
    async def search_similar(
        self,
        query_embedding: list[float],
        *,
        module_id: str | None = None,
        limit: int = 3,
    ) -> list[VectorSearchResult]:
        """Find chunks most similar to the query embedding.

        Args:
            query_embedding: The query vector.
            module_id: Optional scope — only chunks of resources in this module.
            limit: Maximum number of results.

        Returns:
            List of VectorSearchResult ordered by descending similarity;
            ties are ordered by resource creation and chunk index.
        """
        ...
