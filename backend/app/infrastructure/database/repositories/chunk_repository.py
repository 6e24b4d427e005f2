"""SQLAlchemy implementation of ChunkRepository — pgvector-powered vector search."""

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.chunk_repository import ChunkRepository, VectorSearchResult
from app.domain.entities.resource_chunk import ResourceChunk
from app.domain.exceptions import StorageError
from app.infrastructure.database.models.resource_chunk_models import (
    EMBEDDING_DIMENSIONS,
    ResourceChunkModel,
)
from app.infrastructure.database.models.resource_models import ResourceModel

logger = logging.getLogger(__name__)


class PgChunkRepository(ChunkRepository):
    """Concrete chunk repository backed by PostgreSQL + pgvector."""

    def __init__(self, session: AsyncSession, dimensions: int = EMBEDDING_DIMENSIONS):
        self._session = session
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def replace_chunks(self, resource_id: str, chunks: list[ResourceChunk]) -> int:
        """Swap a resource's chunk set inside a SAVEPOINT.

        A transaction-scoped advisory lock on the resource id serialises
        concurrent writers from other processes; a failure rolls the
        savepoint back so the previous set stays in place.
        """
        self._validate(resource_id, chunks)

        models = [
            ResourceChunkModel(
                resource_id=resource_id,
                chunk_index=chunk.chunk_index,
                content=chunk.content,
                embedding=chunk.embedding,
                metadata_=chunk.metadata,
            )
            for chunk in chunks
        ]

        try:
            async with self._session.begin_nested():
                await self._session.execute(
                    select(func.pg_advisory_xact_lock(func.hashtext(resource_id)))
                )
                await self._session.execute(
                    delete(ResourceChunkModel).where(ResourceChunkModel.resource_id == resource_id)
                )
                self._session.add_all(models)
                await self._session.flush()
        except SQLAlchemyError as e:
            raise StorageError(resource_id, str(e)) from e

        logger.info("Stored %d chunks for resource %s", len(models), resource_id)
        return len(models)

    async def delete_by_resource(self, resource_id: str) -> int:
        """Delete all chunks belonging to a resource."""
        result = await self._session.execute(
            delete(ResourceChunkModel).where(
                ResourceChunkModel.resource_id == resource_id
            )
        )
        count = result.rowcount
        if count > 0:
            logger.info("Deleted %d chunks for resource %s", count, resource_id)
        return count

    async def get_by_resource(self, resource_id: str) -> list[ResourceChunk]:
        result = await self._session.execute(
            select(ResourceChunkModel)
            .where(ResourceChunkModel.resource_id == resource_id)
            .order_by(ResourceChunkModel.chunk_index.asc())
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def count_by_resource(self, resource_id: str) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(ResourceChunkModel)
            .where(ResourceChunkModel.resource_id == resource_id)
        )
        return result.scalar_one()

    async def search_similar(
        self,
        query_embedding: list[float],
        *,
        module_id: str | None = None,
        limit: int = 3,
    ) -> list[VectorSearchResult]:
        """Find chunks most similar to the query embedding using cosine similarity.

        Joins with the resources table to apply the module scope and return
        resource-level fields alongside chunk-level similarity scores.
        """
        if len(query_embedding) != self._dimensions:
            raise ValueError(
                f"Query embedding has {len(query_embedding)} dimensions, expected {self._dimensions}"
            )

        distance = ResourceChunkModel.embedding.cosine_distance(query_embedding)

        query = (
            select(
                ResourceChunkModel.id,
                ResourceChunkModel.resource_id,
                ResourceChunkModel.chunk_index,
                ResourceChunkModel.content,
                ResourceChunkModel.metadata_.label("chunk_metadata"),
                ResourceChunkModel.created_at,
                ResourceChunkModel.updated_at,
                ResourceModel.title,
                ResourceModel.media_type,
                ResourceModel.module_id,
                distance.label("distance"),
            )
            .select_from(ResourceChunkModel)
            .join(ResourceModel, ResourceModel.id == ResourceChunkModel.resource_id)
        )

        if module_id is not None:
            query = query.where(ResourceModel.module_id == module_id)

        query = query.order_by(
            distance.asc(),
            ResourceModel.created_at.asc(),
            ResourceModel.id.asc(),
            ResourceChunkModel.chunk_index.asc(),
        ).limit(limit)

        result = await self._session.execute(query)
        rows = result.all()

        return [
            VectorSearchResult(
                chunk=ResourceChunk(
                    id=str(row.id),
                    resource_id=row.resource_id,
                    chunk_index=row.chunk_index,
                    content=row.content,
                    embedding=[],  # Don't return full embedding in search results
                    metadata=row.chunk_metadata or {},
                    created_at=row.created_at,
                    updated_at=row.updated_at,
                ),
                similarity=1.0 - float(row.distance),
                resource_id=row.resource_id,
                resource_title=row.title,
                media_type=row.media_type,
                module_id=row.module_id,
            )
            for row in rows
        ]

    # ── Helpers ──────────────────────────────────────────────────────

    def _validate(self, resource_id: str, chunks: list[ResourceChunk]) -> None:
        """Reject an incomplete or malformed chunk set before anything is written."""
        for expected_index, chunk in enumerate(sorted(chunks, key=lambda c: c.chunk_index)):
            if chunk.chunk_index != expected_index:
                raise StorageError(resource_id, "chunk indexes must be contiguous from 0")
            if chunk.resource_id != resource_id:
                raise StorageError(resource_id, f"chunk {chunk.chunk_index} belongs to {chunk.resource_id}")
            if len(chunk.embedding) != self._dimensions:
                raise StorageError(
                    resource_id,
                    f"chunk {chunk.chunk_index} has {len(chunk.embedding)} dimensions, "
                    f"expected {self._dimensions}",
                )

    @staticmethod
    def _to_domain(model: ResourceChunkModel) -> ResourceChunk:
        return ResourceChunk(
            id=str(model.id),
            resource_id=model.resource_id,
            chunk_index=model.chunk_index,
            content=model.content,
            embedding=[float(v) for v in model.embedding] if model.embedding is not None else [],
            metadata=model.metadata_ or {},
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
