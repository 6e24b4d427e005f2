"""Abstract repository interface (port) for resources."""

from abc import ABC, abstractmethod
from datetime import datetime

from app.domain.entities import Resource


class ResourceRepository(ABC):
    """Port for resource persistence — implemented in the infrastructure layer."""

    @abstractmethod
    async def get_by_id(self, resource_id: str) -> Resource | None:
        """Retrieve a single resource by its ID."""
        ...

    @abstractmethod
    async def create(self, resource: Resource) -> Resource:
        """Persist a new resource and return it with the generated ID."""
        ...

    @abstractmethod
    async def update(self, resource: Resource) -> Resource:
        """Update an existing resource."""
        ...

    @abstractmethod
    async def delete(self, resource_id: str) -> bool:
        """Delete a resource record by ID. Returns True if deleted, False if not found."""
        ...

    @abstractmethod
    async def list_unprocessed(
        self,
        *,
        stale_before: datetime | None = None,
        limit: int | None = None,
    ) -> list[Resource]:
        """List resources eligible for the ingestion sweep.

        Eligible: has a blob reference, and is either unprocessed, failed,
        or stuck in an in-flight status whose last attempt started before
        ``stale_before``. Ordered oldest first.
        """
        ...
