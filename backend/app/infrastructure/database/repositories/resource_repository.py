"""SQLAlchemy implementation of the ResourceRepository."""

import uuid
from datetime import datetime

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces import ResourceRepository
from app.domain.entities import ProcessingStatus, Resource
from app.infrastructure.database.models.resource_models import ResourceModel

_RETRY_STATUSES = (ProcessingStatus.UNPROCESSED.value, ProcessingStatus.FAILED.value)
_IN_FLIGHT_STATUSES = tuple(s.value for s in ProcessingStatus if s.in_flight)


class SQLAlchemyResourceRepository(ResourceRepository):
    """Concrete resource repository backed by PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, resource_id: str) -> Resource | None:
        model = await self._get_model(resource_id)
        return self._to_domain(model) if model else None

    async def create(self, resource: Resource) -> Resource:
        if not resource.id:
            resource.id = str(uuid.uuid4())

        model = ResourceModel(
            id=resource.id,
            title=resource.title,
            media_type=resource.media_type,
            blob_ref=resource.blob_ref,
            file_size=resource.file_size,
            module_id=resource.module_id,
            owner_id=resource.owner_id,
            status=resource.status.value,
            chunk_count=resource.chunk_count,
            last_attempt_at=resource.last_attempt_at,
            processed_at=resource.processed_at,
            error_message=resource.error_message,
            created_at=resource.created_at,
            updated_at=resource.updated_at,
        )

        self._session.add(model)
        await self._session.flush()
        return resource

    async def update(self, resource: Resource) -> Resource:
        model = await self._get_model(resource.id)
        if model is None:
            raise ValueError(f"Resource with id {resource.id} not found")

        model.title = resource.title
        model.media_type = resource.media_type
        model.blob_ref = resource.blob_ref
        model.module_id = resource.module_id
        model.owner_id = resource.owner_id
        model.status = resource.status.value
        model.chunk_count = resource.chunk_count
        model.last_attempt_at = resource.last_attempt_at
        model.processed_at = resource.processed_at
        model.error_message = resource.error_message
        model.updated_at = resource.updated_at

        await self._session.flush()
        return resource

    async def delete(self, resource_id: str) -> bool:
        model = await self._get_model(resource_id)
        if model is None:
            return False
        await self._session.delete(model)
        await self._session.flush()
        return True

    async def list_unprocessed(
        self,
        *,
        stale_before: datetime | None = None,
        limit: int | None = None,
    ) -> list[Resource]:
        eligible = ResourceModel.status.in_(_RETRY_STATUSES)
        if stale_before is not None:
            eligible = or_(
                eligible,
                and_(
                    ResourceModel.status.in_(_IN_FLIGHT_STATUSES),
                    or_(
                        ResourceModel.last_attempt_at.is_(None),
                        ResourceModel.last_attempt_at < stale_before,
                    ),
                ),
            )

        query = (
            select(ResourceModel)
            .where(ResourceModel.blob_ref.is_not(None))
            .where(ResourceModel.blob_ref != "")
            .where(eligible)
            .order_by(ResourceModel.created_at.asc(), ResourceModel.id.asc())
        )
        if limit is not None:
            query = query.limit(limit)

        result = await self._session.execute(query)
        return [self._to_domain(m) for m in result.scalars().all()]

    # ── Helpers ──────────────────────────────────────────────────────

    async def _get_model(self, resource_id: str | None) -> ResourceModel | None:
        if resource_id is None:
            return None
        result = await self._session.execute(
            select(ResourceModel).where(ResourceModel.id == resource_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _to_domain(model: ResourceModel) -> Resource:
        return Resource(
            id=model.id,
            title=model.title,
            media_type=model.media_type,
            blob_ref=model.blob_ref,
            file_size=model.file_size,
            module_id=model.module_id,
            owner_id=model.owner_id,
            status=ProcessingStatus(model.status),
            chunk_count=model.chunk_count or 0,
            last_attempt_at=model.last_attempt_at,
            processed_at=model.processed_at,
            error_message=model.error_message,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
