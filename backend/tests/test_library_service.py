"""
OptSolv Backend — Library Service Tests
=========================================

What we test:
    ✅ Toggle flips pending ↔ completed and advances updated_at only
    ✅ Lists are newest first, scoped to the owner, filterable by status
    ✅ Deletes are idempotent and never touch another user's rows
    ✅ Foreign or missing rows → NotFoundError
"""

import uuid
from datetime import timedelta

import pytest

from optsolv.database import utcnow
from optsolv.exceptions import NotFoundError, ValidationError
from optsolv.models.document import Document
from optsolv.repositories import NoteRepository, TaskRepository
from optsolv.schemas.analysis import NoteItem, TaskItem
from optsolv.services.library_service import LibraryService


def _naive(value):
    return value.replace(tzinfo=None)


async def _seed(session, owner_id, task_titles=("Buy milk",), note_titles=()):
    document = Document(user_id=owner_id, image_url="http://test/api/files/x.png")
    session.add(document)
    await session.flush()
    tasks = await TaskRepository(session).bulk_create(
        document.id, owner_id, [TaskItem(title=t) for t in task_titles]
    )
    notes = await NoteRepository(session).bulk_create(
        document.id, owner_id, [NoteItem(title=t, content=f"{t} content") for t in note_titles]
    )
    await session.commit()
    return document, tasks, notes


class TestToggle:

    @pytest.mark.asyncio
    async def test_toggle_twice_returns_to_pending(self, db_session, user):
        _, (task,), _ = await _seed(db_session, user.id)
        original_title = task.title
        created_at = _naive(task.created_at)
        first_updated = _naive(task.updated_at)
        library = LibraryService(db_session)

        toggled = await library.toggle_task(user.id, task.id)
        assert toggled.status == "completed"
        second_updated = _naive(toggled.updated_at)
        assert second_updated > first_updated

        toggled = await library.toggle_task(user.id, task.id)
        assert toggled.status == "pending"
        assert _naive(toggled.updated_at) > second_updated

        assert toggled.title == original_title
        assert _naive(toggled.created_at) == created_at

    @pytest.mark.asyncio
    async def test_toggle_foreign_task_is_not_found(self, db_session, user, other_user):
        _, (task,), _ = await _seed(db_session, user.id)

        with pytest.raises(NotFoundError):
            await LibraryService(db_session).toggle_task(other_user.id, task.id)

    @pytest.mark.asyncio
    async def test_toggle_missing_task_is_not_found(self, db_session, user):
        with pytest.raises(NotFoundError):
            await LibraryService(db_session).toggle_task(user.id, uuid.uuid4())


class TestLists:

    @pytest.mark.asyncio
    async def test_tasks_newest_first_and_owner_scoped(self, db_session, user, other_user):
        _, (older,), _ = await _seed(db_session, user.id, task_titles=("Older",))
        older.created_at = utcnow() - timedelta(hours=1)
        await db_session.commit()
        await _seed(db_session, user.id, task_titles=("Newer",))
        await _seed(db_session, other_user.id, task_titles=("Not mine",))

        tasks = await LibraryService(db_session).list_tasks(user.id)

        assert [t.title for t in tasks] == ["Newer", "Older"]

    @pytest.mark.asyncio
    async def test_status_filter(self, db_session, user):
        _, tasks, _ = await _seed(db_session, user.id, task_titles=("A", "B"))
        library = LibraryService(db_session)
        await library.toggle_task(user.id, tasks[0].id)

        completed = await library.list_tasks(user.id, "completed")
        pending = await library.list_tasks(user.id, "pending")

        assert [t.title for t in completed] == ["A"]
        assert [t.title for t in pending] == ["B"]

    @pytest.mark.asyncio
    async def test_unknown_status_is_rejected(self, db_session, user):
        with pytest.raises(ValidationError):
            await LibraryService(db_session).list_tasks(user.id, "archived")

    @pytest.mark.asyncio
    async def test_documents_and_notes(self, db_session, user, other_user):
        document, _, _ = await _seed(db_session, user.id, note_titles=("Idea",))
        await _seed(db_session, other_user.id, note_titles=("Theirs",))
        library = LibraryService(db_session)

        documents = await library.list_documents(user.id)
        notes = await library.list_notes(user.id)

        assert [d.id for d in documents] == [document.id]
        assert [n.title for n in notes] == ["Idea"]
        assert (await library.get_document(user.id, document.id)).id == document.id

    @pytest.mark.asyncio
    async def test_documents_limit_and_offset(self, db_session, user):
        for _ in range(3):
            await _seed(db_session, user.id)
        library = LibraryService(db_session)

        everything = await library.list_documents(user.id)
        second_page = await library.list_documents(user.id, limit=2, offset=2)

        assert len(everything) == 3
        assert [d.id for d in second_page] == [everything[2].id]

    @pytest.mark.asyncio
    async def test_foreign_document_is_not_found(self, db_session, user, other_user):
        document, _, _ = await _seed(db_session, user.id)

        with pytest.raises(NotFoundError):
            await LibraryService(db_session).get_document(other_user.id, document.id)


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_task_is_idempotent(self, db_session, user):
        _, (task,), _ = await _seed(db_session, user.id)
        library = LibraryService(db_session)

        assert await library.delete_task(user.id, task.id) is True
        assert await library.delete_task(user.id, task.id) is False
        assert await library.list_tasks(user.id) == []

    @pytest.mark.asyncio
    async def test_delete_foreign_task_is_a_no_op(self, db_session, user, other_user):
        _, (task,), _ = await _seed(db_session, user.id)
        library = LibraryService(db_session)

        assert await library.delete_task(other_user.id, task.id) is False
        assert [t.id for t in await library.list_tasks(user.id)] == [task.id]

    @pytest.mark.asyncio
    async def test_delete_note(self, db_session, user):
        _, _, (note,) = await _seed(db_session, user.id, task_titles=(), note_titles=("Idea",))
        library = LibraryService(db_session)

        assert await library.delete_note(user.id, note.id) is True
        assert await library.delete_note(user.id, note.id) is False
        assert await library.list_notes(user.id) == []
