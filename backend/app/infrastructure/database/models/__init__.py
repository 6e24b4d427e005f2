from .resource_models import ResourceModel
from .resource_chunk_models import ResourceChunkModel, EMBEDDING_DIMENSIONS

__all__ = [
    "ResourceModel",
    "ResourceChunkModel",
    "EMBEDDING_DIMENSIONS",
]
