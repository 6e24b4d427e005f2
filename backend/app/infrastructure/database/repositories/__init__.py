from .resource_repository import SQLAlchemyResourceRepository
from .chunk_repository import PgChunkRepository

__all__ = [
    "SQLAlchemyResourceRepository",
    "PgChunkRepository",
]
