"""
OptSolv Backend — Preference Service
======================================

What:  Reads and partially updates a user's persisted UI preferences
       (locale, task list filter, sidebar state).
How:   A user without a stored row sees the defaults; the first update
       creates the row.
"""

import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from optsolv.exceptions import PersistenceError
from optsolv.models.preference import (
    DEFAULT_LOCALE,
    DEFAULT_SIDEBAR_OPEN,
    DEFAULT_TASK_FILTER,
)
from optsolv.repositories import PreferenceRepository
from optsolv.schemas.preference import PreferenceResponse, PreferenceUpdate

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES = PreferenceResponse(
    preferred_locale=DEFAULT_LOCALE,
    task_filter=DEFAULT_TASK_FILTER,
    sidebar_open=DEFAULT_SIDEBAR_OPEN,
)


class PreferenceService:
    def __init__(self, session: AsyncSession):
        self.repository = PreferenceRepository(session)

    async def get(self, user_id: uuid.UUID) -> PreferenceResponse:
        try:
            preference = await self.repository.get(user_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load preferences for %s: %s", user_id, str(e))
            raise PersistenceError()
        if preference is None:
            return DEFAULT_PREFERENCES.model_copy()
        return PreferenceResponse.model_validate(preference)

    async def update(self, user_id: uuid.UUID, changes: PreferenceUpdate) -> PreferenceResponse:
        fields = changes.model_dump(exclude_none=True)
        if not fields:
            return await self.get(user_id)
        try:
            preference = await self.repository.upsert(user_id, **fields)
        except SQLAlchemyError as e:
            logger.error("Failed to save preferences for %s: %s", user_id, str(e))
            raise PersistenceError()
        logger.info("Preferences updated for %s: %s", user_id, sorted(fields))
        return PreferenceResponse.model_validate(preference)
