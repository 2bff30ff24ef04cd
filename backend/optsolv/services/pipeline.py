"""
OptSolv Backend — Pipeline Orchestrator
=========================================

What:  Runs one image through upload → OCR → classification and persists
       what comes out.
How:   Drives the PipelineState machine. Each stage calls one gateway; the
       writes that follow a stage each run in their own transaction
       (database.session_scope) so one failing write cannot undo another.
Who:   POST /api/pipeline.

Orchestration Flow:
    ┌───────────┐   ┌─────────┐   ┌───────────┐   ┌──────────────────────────┐
    │ uploading │──▶│   ocr   │──▶│ analyzing │──▶│ success                  │
    │ Storage   │   │ OCR     │   │ Classify  │   │ insert tasks, notes,     │
    │ Gateway   │   │ Gateway │   │ Gateway   │   │ write analysis           │
    └───────────┘   └────┬────┘   └───────────┘   └──────────────────────────┘
                         └─ write extracted text

Error Recovery:
    Gateway failure (any stage)  → abort to idle, run.error set, preview cleared
    Post-stage write failure     → logged at ERROR, named in run.warnings,
                                   the run continues (best-effort writes)

Guards:
    No user             → UnauthorizedError before anything happens
    Run already active  → PipelineBusyError for the same user
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from optsolv.auth import CurrentUser
from optsolv.config import settings
from optsolv.database import session_scope
from optsolv.exceptions import OptSolvError, PipelineBusyError, UnauthorizedError
from optsolv.repositories import DocumentRepository, NoteRepository, TaskRepository
from optsolv.schemas.analysis import AnalysisResult
from optsolv.services.classification_gateway import (
    ClassificationGateway,
    classification_gateway,
)
from optsolv.services.ocr_gateway import OcrGateway, ocr_gateway
from optsolv.services.pipeline_state import (
    PipelineEvent,
    PipelineState,
    advance,
    is_in_progress,
)
from optsolv.services.storage_gateway import StorageGateway, storage_gateway

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to process the note. Please try again."


@dataclass
class PipelineRun:
    """Everything one run produced, successful or not."""

    user_id: uuid.UUID
    state: PipelineState = PipelineState.IDLE
    history: List[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])
    document_id: Optional[uuid.UUID] = None
    image_url: Optional[str] = None
    preview_url: Optional[str] = None
    extracted_text: Optional[str] = None
    analysis: Optional[AnalysisResult] = None
    tasks_saved: int = 0
    notes_saved: int = 0
    warnings: List[str] = field(default_factory=list)
    error: Optional[OptSolvError] = None
    failed_at: Optional[PipelineState] = None
    redirect_to: Optional[str] = None
    redirect_after_seconds: Optional[float] = None

    @property
    def succeeded(self) -> bool:
        return self.state == PipelineState.SUCCESS

    @property
    def user_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return self.error.message or GENERIC_FAILURE_MESSAGE

    def move(self, event: PipelineEvent) -> None:
        previous = self.state
        self.state = advance(self.state, event)
        self.history.append(self.state)
        logger.info(
            "Pipeline %s: %s --%s--> %s",
            self.user_id,
            previous.value,
            event.value,
            self.state.value,
        )


class PipelineOrchestrator:
    """
    One instance per process. Holds the set of users with an active run;
    everything else is per-run state on PipelineRun.
    """

    def __init__(
        self,
        storage: StorageGateway,
        ocr: OcrGateway,
        classifier: ClassificationGateway,
        session_factory: Optional[async_sessionmaker] = None,
    ):
        self.storage = storage
        self.ocr = ocr
        self.classifier = classifier
        self.session_factory = session_factory
        self._active_users: Set[uuid.UUID] = set()

    def is_busy(self, user_id: uuid.UUID) -> bool:
        return user_id in self._active_users

    async def run(
        self,
        user: Optional[CurrentUser],
        filename: Optional[str],
        content: bytes,
        content_type: Optional[str],
    ) -> PipelineRun:
        """
        Process one image end to end.

        Returns:
            The finished PipelineRun. On failure `run.state` is idle and
            `run.error` holds the error of the failing stage; the caller
            decides whether to raise it.

        Raises:
            UnauthorizedError: No user (the run never starts).
            PipelineBusyError: The user already has a run in progress.
        """
        if user is None:
            raise UnauthorizedError()
        if user.id in self._active_users:
            raise PipelineBusyError()

        self._active_users.add(user.id)
        run = PipelineRun(user_id=user.id)
        try:
            await self._execute(run, filename, content, content_type)
        except OptSolvError as e:
            self._abort(run, e)
        except Exception as e:
            logger.error(
                "Pipeline %s: unexpected failure in %s: %s",
                user.id,
                run.state.value,
                str(e),
                exc_info=True,
            )
            self._abort(run, OptSolvError(GENERIC_FAILURE_MESSAGE))
        finally:
            self._active_users.discard(user.id)
        return run

    async def _execute(
        self,
        run: PipelineRun,
        filename: Optional[str],
        content: bytes,
        content_type: Optional[str],
    ) -> None:
        # ── uploading ─────────────────────────────────────────────────────
        run.move(PipelineEvent.START)
        upload = await self.storage.upload(run.user_id, filename, content, content_type)
        run.document_id = upload.document_id
        run.image_url = upload.image_url
        run.preview_url = upload.image_url

        # ── ocr ───────────────────────────────────────────────────────────
        run.move(PipelineEvent.UPLOADED)
        run.extracted_text = await self.ocr.extract_text(upload.image_url)
        await self._best_effort(
            run,
            "extracted_text",
            lambda session: DocumentRepository(session).set_extracted_text(
                upload.document_id, run.user_id, run.extracted_text
            ),
        )

        # ── analyzing ─────────────────────────────────────────────────────
        run.move(PipelineEvent.TEXT_EXTRACTED)
        analysis = await self.classifier.classify(run.extracted_text, upload.document_id)
        run.analysis = analysis

        # ── success ───────────────────────────────────────────────────────
        run.move(PipelineEvent.ANALYZED)
        await self._persist_results(run, analysis)
        run.redirect_to = settings.success_redirect_path
        run.redirect_after_seconds = settings.success_redirect_delay

    async def _persist_results(self, run: PipelineRun, analysis: AnalysisResult) -> None:
        document_id = run.document_id

        if analysis.tasks:
            async def insert_tasks(session: AsyncSession) -> None:
                tasks = await TaskRepository(session).bulk_create(
                    document_id, run.user_id, analysis.tasks
                )
                run.tasks_saved = len(tasks)

            await self._best_effort(run, "tasks", insert_tasks)

        if analysis.notes:
            async def insert_notes(session: AsyncSession) -> None:
                notes = await NoteRepository(session).bulk_create(
                    document_id, run.user_id, analysis.notes
                )
                run.notes_saved = len(notes)

            await self._best_effort(run, "notes", insert_notes)

        await self._best_effort(
            run,
            "analysis",
            lambda session: DocumentRepository(session).set_analysis(
                document_id,
                run.user_id,
                analysis.model_dump(mode="json", by_alias=True),
            ),
        )

    async def _best_effort(
        self,
        run: PipelineRun,
        label: str,
        write: Callable[[AsyncSession], Awaitable[None]],
    ) -> None:
        """Run one write in its own transaction; a failure is recorded, never raised."""
        try:
            async with session_scope(self.session_factory) as session:
                await write(session)
        except Exception as e:
            logger.error(
                "Pipeline %s: failed to save %s for document %s: %s",
                run.user_id,
                label,
                run.document_id,
                str(e),
            )
            run.warnings.append(label)

    def _abort(self, run: PipelineRun, error: OptSolvError) -> None:
        failed_at = run.state
        logger.warning(
            "Pipeline %s aborted in %s: %s",
            run.user_id,
            failed_at.value,
            error.message,
        )
        run.error = error
        run.failed_at = failed_at
        run.preview_url = None
        if is_in_progress(run.state):
            run.move(PipelineEvent.FAILED)


pipeline_orchestrator = PipelineOrchestrator(
    storage=storage_gateway,
    ocr=ocr_gateway,
    classifier=classification_gateway,
)
