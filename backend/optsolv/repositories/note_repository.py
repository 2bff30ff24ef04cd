"""Data access for Note rows."""

import uuid
from typing import List, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from optsolv.models.note import Note
from optsolv.schemas.analysis import NoteItem


class NoteRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def bulk_create(
        self,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        items: Sequence[NoteItem],
    ) -> List[Note]:
        notes = [
            Note(
                document_id=document_id,
                user_id=user_id,
                title=item.title,
                content=item.content,
            )
            for item in items
        ]
        self.session.add_all(notes)
        await self.session.flush()
        return notes

    async def list_for_user(self, user_id: uuid.UUID) -> List[Note]:
        result = await self.session.execute(
            select(Note)
            .where(Note.user_id == user_id)
            .order_by(Note.created_at.desc(), Note.id)
        )
        return list(result.scalars().all())

    async def delete(self, note_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        result = await self.session.execute(
            delete(Note).where(Note.id == note_id, Note.user_id == user_id)
        )
        return result.rowcount > 0
