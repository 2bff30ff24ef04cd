"""Data access for Document rows."""

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from optsolv.database import utcnow
from optsolv.exceptions import NotFoundError
from optsolv.models.document import Document


class DocumentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user_id: uuid.UUID, image_url: str) -> Document:
        """Insert a document with no text and no analysis yet."""
        document = Document(user_id=user_id, image_url=image_url)
        self.session.add(document)
        await self.session.flush()
        return document

    async def get(self, document_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Document]:
        result = await self.session.execute(
            select(Document).where(Document.id == document_id, Document.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_for_user(
        self, user_id: uuid.UUID, limit: int = 100, offset: int = 0
    ) -> List[Document]:
        result = await self.session.execute(
            select(Document)
            .where(Document.user_id == user_id)
            .order_by(Document.created_at.desc(), Document.id)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def set_extracted_text(
        self, document_id: uuid.UUID, user_id: uuid.UUID, text: str
    ) -> None:
        await self._update(document_id, user_id, extracted_text=text)

    async def set_analysis(
        self, document_id: uuid.UUID, user_id: uuid.UUID, analysis: Dict[str, Any]
    ) -> None:
        await self._update(document_id, user_id, analysis=analysis)

    async def _update(self, document_id: uuid.UUID, user_id: uuid.UUID, **values: Any) -> None:
        """
        Raises:
            NotFoundError: No document with that id belongs to the user.
        """
        result = await self.session.execute(
            update(Document)
            .where(Document.id == document_id, Document.user_id == user_id)
            .values(updated_at=utcnow(), **values)
        )
        if result.rowcount == 0:
            raise NotFoundError("Document", str(document_id))
