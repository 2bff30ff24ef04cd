"""Data access for UserPreference rows (one per user, keyed by user id)."""

import uuid
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from optsolv.database import utcnow
from optsolv.models.preference import (
    DEFAULT_LOCALE,
    DEFAULT_SIDEBAR_OPEN,
    DEFAULT_TASK_FILTER,
    UserPreference,
)


class PreferenceRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: uuid.UUID) -> Optional[UserPreference]:
        return await self.session.get(UserPreference, user_id)

    async def upsert(self, user_id: uuid.UUID, **fields: Any) -> UserPreference:
        """Create the row on first write; afterwards only the given fields change."""
        preference = await self.get(user_id)
        if preference is None:
            values = {
                "preferred_locale": DEFAULT_LOCALE,
                "task_filter": DEFAULT_TASK_FILTER,
                "sidebar_open": DEFAULT_SIDEBAR_OPEN,
                "updated_at": utcnow(),
            }
            values.update(fields)
            preference = UserPreference(user_id=user_id, **values)
            self.session.add(preference)
        else:
            for name, value in fields.items():
                setattr(preference, name, value)
            preference.updated_at = utcnow()
        await self.session.flush()
        return preference
