from .resources import (
    ResourceSchema,
    IngestionOutcomeSchema,
    ResourceUploadResultSchema,
    ChunkPreviewSchema,
    ResourceChunksSchema,
    SweepReportSchema,
)
from .retrieval import RetrievalRequest, RetrievedChunkSchema, RetrievalResponse

__all__ = [
    "ResourceSchema",
    "IngestionOutcomeSchema",
    "ResourceUploadResultSchema",
    "ChunkPreviewSchema",
    "ResourceChunksSchema",
    "SweepReportSchema",
    "RetrievalRequest",
    "RetrievedChunkSchema",
    "RetrievalResponse",
]
