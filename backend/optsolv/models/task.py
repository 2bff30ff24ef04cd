"""
OptSolv Backend — Task SQLAlchemy Model
=========================================

What:  ORM model for the `tasks` table: actionable items classified out of a
       document's text.
Who:   Bulk-created by the pipeline orchestrator; toggled and deleted by the
       user through the library service.

Invariants (CHECK constraints, mirrored by pydantic schemas):
    status   ∈ {pending, completed}
    priority ∈ {low, medium, high} or NULL
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from optsolv.database import Base, utcnow

TASK_STATUSES = ("pending", "completed")
TASK_PRIORITIES = ("low", "medium", "high")


class Task(Base):
    """A to-do item extracted from a handwritten note."""

    __tablename__ = "tasks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # New tasks always start pending; only the toggle operation changes this
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    priority: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'completed')", name="ck_tasks_status"),
        CheckConstraint(
            "priority IS NULL OR priority IN ('low', 'medium', 'high')",
            name="ck_tasks_priority",
        ),
        Index("idx_tasks_user_created", "user_id", created_at.desc()),
        Index("idx_tasks_document", "document_id"),
    )

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, status='{self.status}', title='{self.title[:30]}')>"
