from .resource_repository import ResourceRepository
from .chunk_repository import ChunkRepository, VectorSearchResult
from .embedding_provider import EmbeddingProvider
from .text_extractor import TextExtractor, TextExtractionResult
from .blob_storage import BlobStorage, StoredBlob

__all__ = [
    "ResourceRepository",
    "ChunkRepository",
    "VectorSearchResult",
    "EmbeddingProvider",
    "TextExtractor",
    "TextExtractionResult",
    "BlobStorage",
    "StoredBlob",
]
