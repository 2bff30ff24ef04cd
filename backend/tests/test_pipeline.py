"""
OptSolv Backend — Pipeline Orchestrator Tests
===============================================

What we test:
    ✅ Full run: document, extracted text, pending tasks and analysis saved
    ✅ Empty OCR result aborts at `ocr`; classification never runs
    ✅ Malformed classification output aborts at `analyzing`; text stays saved
    ✅ Failed post-stage writes are reported in warnings, the run still succeeds
    ✅ Guards: no user, concurrent run for the same user
    ✅ Unexpected exceptions surface as the generic failure message
"""

import asyncio
import json
from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from optsolv.config import settings
from optsolv.exceptions import (
    EmptyResultError,
    ParseError,
    PipelineBusyError,
    UnauthorizedError,
    ValidationError,
)
from optsolv.models.document import Document
from optsolv.models.note import Note
from optsolv.models.task import Task
from optsolv.services.pipeline import GENERIC_FAILURE_MESSAGE
from optsolv.services.pipeline_state import PipelineState

TWO_TASKS = json.dumps(
    {
        "tasks": [
            {"title": "Buy milk", "priority": "low"},
            {"title": "Call the plumber", "priority": "high"},
        ],
        "notes": [],
    }
)


async def _count(session_factory, model):
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(model))


async def _document(session_factory, document_id):
    async with session_factory() as session:
        return await session.get(Document, document_id)


class TestSuccessfulRun:

    @pytest.mark.asyncio
    async def test_two_tasks_no_notes(self, orchestrator, mock_llm, session_factory, user, png_bytes):
        mock_llm.generate.side_effect = ["buy milk\ncall the plumber", TWO_TASKS]

        run = await orchestrator.run(user, "note.png", png_bytes, "image/png")

        assert run.succeeded
        assert run.error is None
        assert [s.value for s in run.history] == ["idle", "uploading", "ocr", "analyzing", "success"]
        assert run.tasks_saved == 2
        assert run.notes_saved == 0
        assert run.warnings == []
        assert run.redirect_to == settings.success_redirect_path
        assert run.redirect_after_seconds == settings.success_redirect_delay

        async with session_factory() as session:
            tasks = (await session.execute(select(Task))).scalars().all()
        assert {t.title for t in tasks} == {"Buy milk", "Call the plumber"}
        assert {t.status for t in tasks} == {"pending"}
        assert {t.document_id for t in tasks} == {run.document_id}
        assert {t.user_id for t in tasks} == {user.id}
        assert await _count(session_factory, Note) == 0

        document = await _document(session_factory, run.document_id)
        assert document.extracted_text == "buy milk\ncall the plumber"
        assert [t["title"] for t in document.analysis["tasks"]] == ["Buy milk", "Call the plumber"]
        assert document.analysis["notes"] == []

    @pytest.mark.asyncio
    async def test_notes_are_saved(self, orchestrator, mock_llm, session_factory, user, png_bytes):
        mock_llm.generate.side_effect = [
            "ideas",
            json.dumps({"tasks": [], "notes": [{"title": "Idea", "content": "Weekly review"}]}),
        ]

        run = await orchestrator.run(user, "note.png", png_bytes, "image/png")

        assert run.succeeded
        assert run.notes_saved == 1
        assert await _count(session_factory, Note) == 1
        assert await _count(session_factory, Task) == 0

    @pytest.mark.asyncio
    async def test_empty_priority_and_due_date_still_save_the_task(
        self, orchestrator, mock_llm, session_factory, user, png_bytes
    ):
        mock_llm.generate.side_effect = [
            "buy milk",
            json.dumps({"tasks": [{"title": "Buy milk", "priority": "", "dueDate": ""}], "notes": []}),
        ]

        run = await orchestrator.run(user, "note.png", png_bytes, "image/png")

        assert run.succeeded
        assert run.tasks_saved == 1
        async with session_factory() as session:
            task = (await session.execute(select(Task))).scalar_one()
        assert task.status == "pending"
        assert task.priority is None
        assert task.due_date is None

    @pytest.mark.asyncio
    async def test_ocr_receives_uploaded_bytes(self, orchestrator, mock_llm, user, png_bytes):
        mock_llm.generate.side_effect = ["text", TWO_TASKS]

        await orchestrator.run(user, "note.png", png_bytes, "image/png")

        _, parts, _ = mock_llm.generate.await_args_list[0].args
        assert parts[1]["data"] == png_bytes


class TestFailedRun:

    @pytest.mark.asyncio
    async def test_empty_ocr_aborts_before_classification(
        self, orchestrator, mock_llm, session_factory, user, png_bytes
    ):
        mock_llm.generate.side_effect = ["   "]

        run = await orchestrator.run(user, "note.png", png_bytes, "image/png")

        assert run.state == PipelineState.IDLE
        assert run.failed_at == PipelineState.OCR
        assert isinstance(run.error, EmptyResultError)
        assert run.user_message == "No text found in image"
        assert run.preview_url is None
        assert mock_llm.generate.await_count == 1

        document = await _document(session_factory, run.document_id)
        assert document is not None
        assert document.extracted_text is None
        assert await _count(session_factory, Task) == 0

    @pytest.mark.asyncio
    async def test_malformed_analysis_aborts_at_analyzing(
        self, orchestrator, mock_llm, session_factory, user, png_bytes
    ):
        mock_llm.generate.side_effect = ["buy milk", "I could not produce JSON, sorry"]

        run = await orchestrator.run(user, "note.png", png_bytes, "image/png")

        assert run.failed_at == PipelineState.ANALYZING
        assert isinstance(run.error, ParseError)
        assert run.state == PipelineState.IDLE

        document = await _document(session_factory, run.document_id)
        assert document.extracted_text == "buy milk"
        assert document.analysis is None
        assert await _count(session_factory, Task) == 0

    @pytest.mark.asyncio
    async def test_invalid_upload_aborts_at_uploading(self, orchestrator, mock_llm, session_factory, user):
        run = await orchestrator.run(user, "scan.pdf", b"%PDF", "application/pdf")

        assert run.failed_at == PipelineState.UPLOADING
        assert isinstance(run.error, ValidationError)
        assert run.document_id is None
        assert [s.value for s in run.history] == ["idle", "uploading", "idle"]
        mock_llm.generate.assert_not_called()
        assert await _count(session_factory, Document) == 0

    @pytest.mark.asyncio
    async def test_unexpected_exception_uses_generic_message(self, orchestrator, mock_llm, user, png_bytes):
        mock_llm.generate.side_effect = KeyError("boom")

        run = await orchestrator.run(user, "note.png", png_bytes, "image/png")

        assert run.failed_at == PipelineState.OCR
        assert run.user_message == GENERIC_FAILURE_MESSAGE


class TestBestEffortWrites:

    @pytest.mark.asyncio
    async def test_task_insert_failure_is_a_warning(
        self, orchestrator, mock_llm, session_factory, user, png_bytes
    ):
        mock_llm.generate.side_effect = ["text", TWO_TASKS]

        with patch(
            "optsolv.services.pipeline.TaskRepository.bulk_create",
            side_effect=RuntimeError("insert failed"),
        ):
            run = await orchestrator.run(user, "note.png", png_bytes, "image/png")

        assert run.succeeded
        assert run.warnings == ["tasks"]
        assert run.tasks_saved == 0
        document = await _document(session_factory, run.document_id)
        assert document.analysis is not None

    @pytest.mark.asyncio
    async def test_text_write_failure_does_not_stop_the_run(
        self, orchestrator, mock_llm, session_factory, user, png_bytes
    ):
        mock_llm.generate.side_effect = ["text", TWO_TASKS]

        with patch(
            "optsolv.services.pipeline.DocumentRepository.set_extracted_text",
            side_effect=RuntimeError("update failed"),
        ):
            run = await orchestrator.run(user, "note.png", png_bytes, "image/png")

        assert run.succeeded
        assert run.warnings == ["extracted_text"]
        assert run.tasks_saved == 2
        document = await _document(session_factory, run.document_id)
        assert document.extracted_text is None


class TestGuards:

    @pytest.mark.asyncio
    async def test_no_user_is_unauthorized(self, orchestrator, mock_llm, session_factory, png_bytes):
        with pytest.raises(UnauthorizedError):
            await orchestrator.run(None, "note.png", png_bytes, "image/png")

        mock_llm.generate.assert_not_called()
        assert await _count(session_factory, Document) == 0

    @pytest.mark.asyncio
    async def test_second_run_for_same_user_is_busy(self, orchestrator, mock_llm, user, png_bytes):
        release = asyncio.Event()
        entered = asyncio.Event()

        async def slow_ocr(*args, **kwargs):
            entered.set()
            await release.wait()
            return "   "

        mock_llm.generate.side_effect = slow_ocr

        first = asyncio.create_task(orchestrator.run(user, "note.png", png_bytes, "image/png"))
        await entered.wait()
        assert orchestrator.is_busy(user.id)

        with pytest.raises(PipelineBusyError):
            await orchestrator.run(user, "note.png", png_bytes, "image/png")

        release.set()
        run = await first
        assert isinstance(run.error, EmptyResultError)
        assert not orchestrator.is_busy(user.id)

    @pytest.mark.asyncio
    async def test_other_users_are_not_blocked(self, orchestrator, mock_llm, user, other_user, png_bytes):
        release = asyncio.Event()
        entered = asyncio.Event()

        async def generate(model_name, parts, config):
            if not entered.is_set():
                entered.set()
                await release.wait()
            return "   "

        mock_llm.generate.side_effect = generate

        first = asyncio.create_task(orchestrator.run(user, "a.png", png_bytes, "image/png"))
        await entered.wait()

        run = await orchestrator.run(other_user, "b.png", png_bytes, "image/png")
        assert isinstance(run.error, EmptyResultError)

        release.set()
        await first
