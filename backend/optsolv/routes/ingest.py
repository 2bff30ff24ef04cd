"""
OptSolv Backend — Ingestion Routes
====================================

What:  The endpoints that turn an image into tasks and notes.

    POST /api/upload    multipart `file` → {documentId, imageUrl}
    POST /api/ocr       {imageUrl}       → {text}
    POST /api/analyze   {text, documentId} → {tasks, notes, summary} + documentId
    POST /api/pipeline  multipart `file` → full run result

The first three expose one gateway each, for clients that drive the steps
themselves; /api/pipeline runs the whole chain on the server.
Every endpoint requires a session (401 otherwise).
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, UploadFile

from optsolv.auth import CurrentUser, get_current_user, get_optional_user
from optsolv.dependencies import (
    get_classification_gateway,
    get_ocr_gateway,
    get_pipeline_orchestrator,
    get_storage_gateway,
)
from optsolv.exceptions import ValidationError
from optsolv.schemas.common import Envelope
from optsolv.schemas.ingest import (
    AnalyzeRequest,
    AnalyzeResponse,
    OcrData,
    OcrRequest,
    PipelineData,
    UploadData,
)
from optsolv.services.classification_gateway import ClassificationGateway
from optsolv.services.ocr_gateway import OcrGateway
from optsolv.services.pipeline import PipelineOrchestrator
from optsolv.services.storage_gateway import StorageGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Ingestion"])


async def _read_upload(file: Optional[UploadFile], storage: StorageGateway) -> bytes:
    if file is None:
        raise ValidationError(message="No file provided", field="file")
    storage.validate_declared_size(file.size)
    return await file.read()


@router.post(
    "/upload",
    response_model=Envelope[UploadData],
    summary="Upload a note image",
)
async def upload_image(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    storage: Annotated[StorageGateway, Depends(get_storage_gateway)],
    file: Optional[UploadFile] = File(default=None),
) -> Envelope[UploadData]:
    content = await _read_upload(file, storage)
    result = await storage.upload(user.id, file.filename, content, file.content_type)
    return Envelope(data=UploadData(document_id=result.document_id, image_url=result.image_url))


@router.post(
    "/ocr",
    response_model=Envelope[OcrData],
    summary="Extract text from an uploaded image",
)
async def extract_text(
    body: OcrRequest,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    ocr: Annotated[OcrGateway, Depends(get_ocr_gateway)],
) -> Envelope[OcrData]:
    text = await ocr.extract_text(str(body.image_url))
    return Envelope(data=OcrData(text=text))


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    summary="Classify extracted text into tasks and notes",
)
async def analyze_text(
    body: AnalyzeRequest,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    classifier: Annotated[ClassificationGateway, Depends(get_classification_gateway)],
) -> AnalyzeResponse:
    result = await classifier.classify(body.text, body.document_id)
    return AnalyzeResponse(data=result, document_id=body.document_id)


@router.post(
    "/pipeline",
    response_model=Envelope[PipelineData],
    summary="Upload, read and classify a note image in one request",
    description=(
        "Runs upload → OCR → classification and saves the resulting tasks and notes. "
        "On failure the response is the error of the failing stage. Writes after a "
        "successful stage are best-effort; any that failed are listed in `warnings`."
    ),
)
async def run_pipeline(
    user: Annotated[Optional[CurrentUser], Depends(get_optional_user)],
    orchestrator: Annotated[PipelineOrchestrator, Depends(get_pipeline_orchestrator)],
    file: Optional[UploadFile] = File(default=None),
) -> Envelope[PipelineData]:
    # The orchestrator owns the "no user" guard so it holds for every caller
    content = await _read_upload(file, orchestrator.storage) if user is not None else b""
    run = await orchestrator.run(
        user,
        file.filename if file is not None else None,
        content,
        file.content_type if file is not None else None,
    )
    if run.error is not None:
        raise run.error

    return Envelope(
        data=PipelineData(
            state=run.state.value,
            history=[state.value for state in run.history],
            document_id=run.document_id,
            image_url=run.image_url,
            extracted_text=run.extracted_text,
            analysis=run.analysis,
            tasks_saved=run.tasks_saved,
            notes_saved=run.notes_saved,
            warnings=run.warnings,
            redirect_to=run.redirect_to,
            redirect_after_seconds=run.redirect_after_seconds,
        )
    )
