from .base import Base
from .session import engine, async_session_factory, get_db_session
from .models import EMBEDDING_DIMENSIONS, ResourceModel, ResourceChunkModel

__all__ = [
    "Base",
    "engine",
    "async_session_factory",
    "get_db_session",
    "EMBEDDING_DIMENSIONS",
    "ResourceModel",
    "ResourceChunkModel",
]
