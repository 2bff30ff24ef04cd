"""
OptSolv Backend — Library Routes
==================================

What:  Browse and manage what the pipeline produced.

    GET    /api/documents?limit=&offset=  newest first, paged (default 100)
    GET    /api/documents/{id}         404 if missing or not yours
    GET    /api/tasks?status=          optional pending | completed filter
    POST   /api/tasks/{id}/toggle      pending ↔ completed
    DELETE /api/tasks/{id}             204, idempotent
    GET    /api/notes                  newest first
    DELETE /api/notes/{id}             204, idempotent
    GET    /api/files/{key}            stored image bytes (public, like the URL it backs)
"""

import uuid
from typing import Annotated, List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import FileResponse

from optsolv.auth import CurrentUser, get_current_user
from optsolv.dependencies import get_library_service, get_storage_gateway
from optsolv.schemas.common import Envelope
from optsolv.schemas.library import DocumentResponse, NoteResponse, TaskResponse
from optsolv.services.library_service import LibraryService
from optsolv.services.storage_gateway import StorageGateway

router = APIRouter(prefix="/api", tags=["Library"])


# ── Documents ─────────────────────────────────────────────────────────────

@router.get("/documents", response_model=Envelope[List[DocumentResponse]])
async def list_documents(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    library: Annotated[LibraryService, Depends(get_library_service)],
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
):
    documents = await library.list_documents(user.id, limit, offset)
    return Envelope(data=[DocumentResponse.model_validate(d) for d in documents])


@router.get("/documents/{document_id}", response_model=Envelope[DocumentResponse])
async def get_document(
    document_id: uuid.UUID,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    library: Annotated[LibraryService, Depends(get_library_service)],
):
    document = await library.get_document(user.id, document_id)
    return Envelope(data=DocumentResponse.model_validate(document))


# ── Tasks ─────────────────────────────────────────────────────────────────

@router.get("/tasks", response_model=Envelope[List[TaskResponse]])
async def list_tasks(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    library: Annotated[LibraryService, Depends(get_library_service)],
    status: Optional[Literal["pending", "completed"]] = Query(default=None),
):
    tasks = await library.list_tasks(user.id, status)
    return Envelope(data=[TaskResponse.model_validate(t) for t in tasks])


@router.post("/tasks/{task_id}/toggle", response_model=Envelope[TaskResponse])
async def toggle_task(
    task_id: uuid.UUID,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    library: Annotated[LibraryService, Depends(get_library_service)],
):
    task = await library.toggle_task(user.id, task_id)
    return Envelope(data=TaskResponse.model_validate(task))


@router.delete("/tasks/{task_id}", status_code=204, response_class=Response)
async def delete_task(
    task_id: uuid.UUID,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    library: Annotated[LibraryService, Depends(get_library_service)],
) -> Response:
    await library.delete_task(user.id, task_id)
    return Response(status_code=204)


# ── Notes ─────────────────────────────────────────────────────────────────

@router.get("/notes", response_model=Envelope[List[NoteResponse]])
async def list_notes(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    library: Annotated[LibraryService, Depends(get_library_service)],
):
    notes = await library.list_notes(user.id)
    return Envelope(data=[NoteResponse.model_validate(n) for n in notes])


@router.delete("/notes/{note_id}", status_code=204, response_class=Response)
async def delete_note(
    note_id: uuid.UUID,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    library: Annotated[LibraryService, Depends(get_library_service)],
) -> Response:
    await library.delete_note(user.id, note_id)
    return Response(status_code=204)


# ── Stored blobs ──────────────────────────────────────────────────────────

@router.get("/files/{key:path}", response_class=FileResponse, include_in_schema=False)
async def get_file(
    key: str,
    storage: Annotated[StorageGateway, Depends(get_storage_gateway)],
) -> FileResponse:
    path = storage.resolve_path(key)
    return FileResponse(path, media_type=storage.media_type_for(key))
