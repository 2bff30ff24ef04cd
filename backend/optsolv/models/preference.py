"""
OptSolv Backend — UserPreference SQLAlchemy Model
===================================================

What:  One row per user holding persisted UI preferences (locale, task list
       filter, sidebar state).
How:   Primary key is the user id, so reads and upserts are single-row lookups.
       A user without a row gets the defaults from PreferenceService.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from optsolv.database import Base, utcnow

SUPPORTED_LOCALES = ("pt-BR", "en-US")
TASK_FILTERS = ("all", "pending", "completed")

DEFAULT_LOCALE = "pt-BR"
DEFAULT_TASK_FILTER = "all"
DEFAULT_SIDEBAR_OPEN = True


class UserPreference(Base):
    __tablename__ = "user_preferences"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)

    preferred_locale: Mapped[str] = mapped_column(
        String(10), nullable=False, default=DEFAULT_LOCALE
    )
    task_filter: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DEFAULT_TASK_FILTER
    )
    sidebar_open: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=DEFAULT_SIDEBAR_OPEN
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "preferred_locale IN ('pt-BR', 'en-US')", name="ck_user_preferences_locale"
        ),
        CheckConstraint(
            "task_filter IN ('all', 'pending', 'completed')",
            name="ck_user_preferences_task_filter",
        ),
    )

    def __repr__(self) -> str:
        return f"<UserPreference(user_id={self.user_id}, locale='{self.preferred_locale}')>"
