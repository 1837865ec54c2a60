"""SQLAlchemy ORM model for ingested resources (one row per source document)."""

import uuid

from sqlalchemy import (
    Column,
    DateTime,
    String,
    func,
)

from bac_guide.infrastructure.database.base import Base


def _generate_uuid() -> str:
    return str(uuid.uuid4())


class ResourceModel(Base):
    """A source document. The filename is unique: re-ingestion reuses the row."""

    __tablename__ = "resources"

    id = Column(String(36), primary_key=True, default=_generate_uuid)
    title = Column(String(512), nullable=False)
    type = Column(String(20), nullable=False, default="guide", index=True)  # "guide" | "score"
    filename = Column(String(512), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
