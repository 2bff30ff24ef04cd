"""Data access for Task rows."""

import uuid
from typing import List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from optsolv.models.task import Task
from optsolv.schemas.analysis import TaskItem


class TaskRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def bulk_create(
        self,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        items: Sequence[TaskItem],
    ) -> List[Task]:
        """Insert one pending task per classified item, tagged with document and owner."""
        tasks = [
            Task(
                document_id=document_id,
                user_id=user_id,
                title=item.title,
                description=item.description,
                priority=item.priority,
                due_date=item.due_date,
                status="pending",
            )
            for item in items
        ]
        self.session.add_all(tasks)
        await self.session.flush()
        return tasks

    async def get(self, task_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Task]:
        result = await self.session.execute(
            select(Task).where(Task.id == task_id, Task.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_for_user(
        self, user_id: uuid.UUID, status: Optional[str] = None
    ) -> List[Task]:
        query = select(Task).where(Task.user_id == user_id)
        if status is not None:
            query = query.where(Task.status == status)
        result = await self.session.execute(
            query.order_by(Task.created_at.desc(), Task.id)
        )
        return list(result.scalars().all())

    async def delete(self, task_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """Returns False when there was nothing to delete."""
        result = await self.session.execute(
            delete(Task).where(Task.id == task_id, Task.user_id == user_id)
        )
        return result.rowcount > 0
