"""SQLAlchemy ORM model for resource chunks with pgvector embeddings."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB

from pgvector.sqlalchemy import Vector

from app.infrastructure.database.base import Base

EMBEDDING_DIMENSIONS = 768  # HNSW max: 2000


class ResourceChunkModel(Base):
    """A text chunk of a processed resource, with its vector embedding.

    A resource's chunks are always written as one complete set with
    contiguous indexes. Deleting the resource row cascades to its chunks.
    """

    __tablename__ = "resource_chunks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    resource_id = Column(
        String(36),
        ForeignKey("resources.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chunk_index = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    embedding = Column(Vector(EMBEDDING_DIMENSIONS), nullable=False)
    metadata_ = Column("metadata", JSONB, nullable=False, server_default="{}")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("resource_id", "chunk_index", name="uq_chunk_identity"),
        Index("idx_chunks_embedding_hnsw", embedding, postgresql_using="hnsw",
              postgresql_ops={"embedding": "vector_cosine_ops"}),
    )
