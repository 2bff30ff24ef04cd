"""
OptSolv Backend — Document SQLAlchemy Model
=============================================

What:  ORM model for the `documents` table, one row per uploaded note image.
How:   Typed declarative mapping (Mapped / mapped_column); Alembic migration
       001 creates the table with server defaults and row-level security.
Who:   Created by the storage gateway, updated by the pipeline orchestrator,
       read by the library service.

Lifecycle:
    1. Created after the blob write succeeds (extracted_text, analysis NULL)
    2. extracted_text set after OCR (best-effort)
    3. analysis set after classification (best-effort)
    Deleting a document cascades (ON DELETE CASCADE) to its tasks and notes.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Index, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from optsolv.database import Base, utcnow


class Document(Base):
    """An uploaded image and everything derived from it."""

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Owner; every query filters on it
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    # Public URL returned by the storage gateway (<base>/api/files/<key>)
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)

    extracted_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Validated classification output: {"tasks": [...], "notes": [...], "summary": ...}
    analysis: Mapped[Optional[Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    # "My documents, newest first" is the only list query
    __table_args__ = (
        Index("idx_documents_user_created", "user_id", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, user_id={self.user_id})>"
