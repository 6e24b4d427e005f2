"""SQLAlchemy ORM model for uploaded resources and their ingestion status."""

import uuid

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    func,
)

from app.infrastructure.database.base import Base


def _generate_uuid() -> str:
    return str(uuid.uuid4())


class ResourceModel(Base):
    """A document or note whose text is indexed for retrieval.

    ``module_id`` and ``owner_id`` are opaque ids owned by the surrounding
    application; they are stored for scoping, never interpreted here.
    """

    __tablename__ = "resources"

    # ── Identity ──────────────────────────────────────────────────────
    id = Column(String(36), primary_key=True, default=_generate_uuid)
    title = Column(String(255), nullable=False)
    media_type = Column(String(150), nullable=False)
    blob_ref = Column(String(1000), nullable=True)
    file_size = Column(Integer, nullable=True)

    # ── Scope ─────────────────────────────────────────────────────────
    module_id = Column(String(64), nullable=True, index=True)
    owner_id = Column(String(64), nullable=True, index=True)

    # ── Ingestion state ───────────────────────────────────────────────
    status = Column(String(30), nullable=False, default="unprocessed", index=True)
    chunk_count = Column(Integer, nullable=False, default=0, server_default="0")
    last_attempt_at = Column(DateTime(timezone=True), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)

    # ── Timestamps ────────────────────────────────────────────────────
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_resources_status_attempt", "status", "last_attempt_at"),
    )
