"""Pydantic schemas for resource ingestion API requests and responses."""

from typing import Any

from pydantic import BaseModel


class ResourceSchema(BaseModel):
    """A resource and its current ingestion state."""
    id: str
    title: str
    media_type: str
    blob_ref: str | None = None
    module_id: str | None = None
    owner_id: str | None = None
    file_size: int | None = None
    status: str
    chunk_count: int = 0
    last_attempt_at: str | None = None
    processed_at: str | None = None
    error_message: str | None = None
    created_at: str


class IngestionOutcomeSchema(BaseModel):
    """Result of one processing attempt."""
    resource_id: str
    succeeded: bool
    status: str | None = None
    chunk_count: int = 0
    error: str | None = None
    duration_ms: int = 0


class ResourceUploadResultSchema(BaseModel):
    resource: ResourceSchema
    outcome: IngestionOutcomeSchema


class ChunkPreviewSchema(BaseModel):
    chunk_index: int
    length: int
    preview: str
    metadata: dict[str, Any] = {}


class ResourceChunksSchema(BaseModel):
    """Chunk listing for one resource — previews only, no vectors."""
    resource_id: str
    chunk_count: int
    chunks: list[ChunkPreviewSchema]


class SweepReportSchema(BaseModel):
    candidates: int
    processed: int
    failed: int
    skipped: int
    aborted: bool = False
    abort_reason: str | None = None
