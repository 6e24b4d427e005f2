from .context_formatter import ContextFormatter
from .embedding_service import EmbeddingService
from .resource_locks import ResourceLockRegistry
from .resource_processing_service import ResourceProcessingService
from .resource_sweep_service import ResourceSweepService
from .retrieval_service import RetrievalService
from .text_chunker import TextChunker

__all__ = [
    "ContextFormatter",
    "EmbeddingService",
    "ResourceLockRegistry",
    "ResourceProcessingService",
    "ResourceSweepService",
    "RetrievalService",
    "TextChunker",
]
