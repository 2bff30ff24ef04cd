"""
OptSolv Backend — Ingestion Request/Response Schemas
======================================================

What:  Bodies and payloads of the four ingestion endpoints:
       POST /api/upload, /api/ocr, /api/analyze and /api/pipeline.
"""

import uuid
from typing import List, Optional

from pydantic import AnyHttpUrl, Field, field_validator

from optsolv.schemas.analysis import AnalysisResult
from optsolv.schemas.common import CamelModel


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class OcrRequest(CamelModel):
    image_url: AnyHttpUrl = Field(description="Publicly fetchable image URL")


class AnalyzeRequest(CamelModel):
    text: str = Field(min_length=1, description="Text extracted by OCR")
    document_id: uuid.UUID

    @field_validator("text")
    @classmethod
    def reject_blank_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text must not be blank")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Payloads (wrapped in Envelope by the routes)
# ══════════════════════════════════════════════════════════════════════════


class UploadData(CamelModel):
    document_id: uuid.UUID
    image_url: str


class OcrData(CamelModel):
    text: str


class AnalyzeResponse(CamelModel):
    """
    {"success": true, "data": {tasks, notes, summary}, "documentId": "..."}

    The document id sits next to `data` rather than inside it, which is the
    shape existing clients of /api/analyze read.
    """
    success: bool = True
    data: AnalysisResult
    document_id: uuid.UUID


class PipelineData(CamelModel):
    """
    Outcome of a server-side pipeline run.

    Fields:
        state:           Final state (always "success" in a 200 response)
        history:         Every state the run passed through, in order
        warnings:        Best-effort writes that failed; the run still succeeded
                         but the listed data was not saved
        redirect_to / redirect_after_seconds:
                         Client hint: where to navigate and how long to wait
    """
    state: str
    history: List[str]
    document_id: Optional[uuid.UUID] = None
    image_url: Optional[str] = None
    extracted_text: Optional[str] = None
    analysis: Optional[AnalysisResult] = None
    tasks_saved: int = 0
    notes_saved: int = 0
    warnings: List[str] = Field(default_factory=list)
    redirect_to: Optional[str] = None
    redirect_after_seconds: Optional[float] = None
