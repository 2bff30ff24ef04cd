"""
OptSolv Backend — Note SQLAlchemy Model
=========================================

What:  ORM model for the `notes` table: informational content classified out
       of a document's text.
Who:   Bulk-created by the pipeline orchestrator, deleted by the user.
       Never updated after creation.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from optsolv.database import Base, utcnow


class Note(Base):
    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_notes_user_created", "user_id", created_at.desc()),
        Index("idx_notes_document", "document_id"),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, title='{self.title[:30]}')>"
