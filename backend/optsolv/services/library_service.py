"""
OptSolv Backend — Library Service
===================================

What:  Everything a user does with their results after a pipeline run:
       list documents, list and toggle tasks, list notes, delete either.
How:   Thin layer over the repositories using the request's session. The
       request session dependency commits on success.
Who:   Routes in routes/library.py, one instance per request.

Semantics worth knowing:
    - Lists are newest first
    - toggle flips pending ↔ completed and advances updated_at; nothing else changes
    - delete is idempotent: deleting a missing (or foreign) row is a no-op
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from optsolv.database import utcnow
from optsolv.exceptions import NotFoundError, PersistenceError, ValidationError
from optsolv.models.document import Document
from optsolv.models.note import Note
from optsolv.models.task import TASK_STATUSES, Task
from optsolv.repositories import DocumentRepository, NoteRepository, TaskRepository

logger = logging.getLogger(__name__)


class LibraryService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.documents = DocumentRepository(session)
        self.tasks = TaskRepository(session)
        self.notes = NoteRepository(session)

    # ── Documents ─────────────────────────────────────────────────────────

    async def list_documents(
        self, user_id: uuid.UUID, limit: int = 100, offset: int = 0
    ) -> List[Document]:
        try:
            return await self.documents.list_for_user(user_id, limit, offset)
        except SQLAlchemyError as e:
            logger.error("Failed to list documents for %s: %s", user_id, str(e))
            raise PersistenceError()

    async def get_document(self, user_id: uuid.UUID, document_id: uuid.UUID) -> Document:
        try:
            document = await self.documents.get(document_id, user_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load document %s: %s", document_id, str(e))
            raise PersistenceError()
        if document is None:
            raise NotFoundError("Document", str(document_id))
        return document

    # ── Tasks ─────────────────────────────────────────────────────────────

    async def list_tasks(self, user_id: uuid.UUID, status: Optional[str] = None) -> List[Task]:
        if status is not None and status not in TASK_STATUSES:
            raise ValidationError(
                message=f"Invalid status '{status}'. Use 'pending' or 'completed'.",
                field="status",
            )
        try:
            return await self.tasks.list_for_user(user_id, status)
        except SQLAlchemyError as e:
            logger.error("Failed to list tasks for %s: %s", user_id, str(e))
            raise PersistenceError()

    async def toggle_task(self, user_id: uuid.UUID, task_id: uuid.UUID) -> Task:
        """
        Flip a task between pending and completed.

        Raises:
            NotFoundError: No such task for this user.
        """
        try:
            task = await self.tasks.get(task_id, user_id)
            if task is None:
                raise NotFoundError("Task", str(task_id))
            task.status = "completed" if task.status == "pending" else "pending"
            task.updated_at = utcnow()
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to toggle task %s: %s", task_id, str(e))
            raise PersistenceError()
        logger.info("Task %s is now %s", task_id, task.status)
        return task

    async def delete_task(self, user_id: uuid.UUID, task_id: uuid.UUID) -> bool:
        try:
            deleted = await self.tasks.delete(task_id, user_id)
        except SQLAlchemyError as e:
            logger.error("Failed to delete task %s: %s", task_id, str(e))
            raise PersistenceError()
        if not deleted:
            logger.debug("Delete of task %s was a no-op", task_id)
        return deleted

    # ── Notes ─────────────────────────────────────────────────────────────

    async def list_notes(self, user_id: uuid.UUID) -> List[Note]:
        try:
            return await self.notes.list_for_user(user_id)
        except SQLAlchemyError as e:
            logger.error("Failed to list notes for %s: %s", user_id, str(e))
            raise PersistenceError()

    async def delete_note(self, user_id: uuid.UUID, note_id: uuid.UUID) -> bool:
        try:
            deleted = await self.notes.delete(note_id, user_id)
        except SQLAlchemyError as e:
            logger.error("Failed to delete note %s: %s", note_id, str(e))
            raise PersistenceError()
        if not deleted:
            logger.debug("Delete of note %s was a no-op", note_id)
        return deleted
