"""Domain entity for uploaded resources and their ingestion status."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ProcessingStatus(str, Enum):
    """Lifecycle states of a resource in the ingestion pipeline."""

    UNPROCESSED = "unprocessed"
    EXTRACTING = "extracting"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    STORING = "storing"
    PROCESSED = "processed"
    FAILED = "failed"

    @property
    def in_flight(self) -> bool:
        return self in _IN_FLIGHT


_IN_FLIGHT = frozenset({
    ProcessingStatus.EXTRACTING,
    ProcessingStatus.CHUNKING,
    ProcessingStatus.EMBEDDING,
    ProcessingStatus.STORING,
})


@dataclass
class Resource:
    """An uploaded document or note — the unit of ingestion.

    ``module_id`` and ``owner_id`` are opaque scope identifiers owned by
    the surrounding application. ``blob_ref`` points at the stored file;
    a resource without one can never be processed.
    """

    title: str
    media_type: str
    blob_ref: str | None = None
    module_id: str | None = None
    owner_id: str | None = None
    file_size: int | None = None
    id: str | None = None
    status: ProcessingStatus = ProcessingStatus.UNPROCESSED
    chunk_count: int = 0
    last_attempt_at: datetime | None = None
    processed_at: datetime | None = None
    error_message: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_processable(self) -> bool:
        return bool(self.blob_ref and self.blob_ref.strip())

    def begin_attempt(self) -> None:
        """Enter the first pipeline step and stamp the attempt time."""
        now = datetime.now(timezone.utc)
        self.status = ProcessingStatus.EXTRACTING
        self.last_attempt_at = now
        self.error_message = None
        self.updated_at = now

    def advance(self, status: ProcessingStatus) -> None:
        """Move to the next in-flight pipeline step."""
        self.status = status
        self.updated_at = datetime.now(timezone.utc)

    def mark_processed(self, chunk_count: int) -> None:
        """Transition to completed state."""
        now = datetime.now(timezone.utc)
        self.status = ProcessingStatus.PROCESSED
        self.chunk_count = chunk_count
        self.processed_at = now
        self.error_message = None
        self.updated_at = now

    def mark_failed(self, message: str) -> None:
        """Transition to failed state. The stored chunk set is left as it was."""
        self.status = ProcessingStatus.FAILED
        self.error_message = message
        self.updated_at = datetime.now(timezone.utc)
