from .resource import Resource, ProcessingStatus
from .resource_chunk import ResourceChunk
from .media_type import MediaTypeKind
from .retrieval import RetrievedChunk
from .ingestion import IngestionOutcome, SweepReport

__all__ = [
    "Resource",
    "ProcessingStatus",
    "ResourceChunk",
    "MediaTypeKind",
    "RetrievedChunk",
    "IngestionOutcome",
    "SweepReport",
]
