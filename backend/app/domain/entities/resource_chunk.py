"""Domain entity for resource chunks — text fragments with vector embeddings."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass
class ResourceChunk:
    """A bounded span of a resource's extracted text, suitable for vector search.

    A resource's chunks are numbered contiguously from 0 and are always
    replaced as a whole set. ``metadata`` snapshots the ordinal and the
    resource title/type at ingestion time.
    """

    resource_id: str
    chunk_index: int
    content: str
    embedding: list[float] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
