"""
OptSolv Backend — Browsing Response Schemas
=============================================

What:  Read models for documents, tasks and notes, built straight from ORM
       rows (from_attributes) and serialized with camelCase keys.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from optsolv.schemas.common import CamelModel


class DocumentResponse(CamelModel):
    id: uuid.UUID
    image_url: str
    extracted_text: Optional[str] = None
    analysis: Optional[Any] = None
    created_at: datetime
    updated_at: datetime


class TaskResponse(CamelModel):
    id: uuid.UUID
    document_id: uuid.UUID
    title: str
    description: Optional[str] = None
    status: str
    priority: Optional[str] = None
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class NoteResponse(CamelModel):
    id: uuid.UUID
    document_id: uuid.UUID
    title: str
    content: str
    created_at: datetime
    updated_at: datetime
