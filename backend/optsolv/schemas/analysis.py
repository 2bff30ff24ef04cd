"""
OptSolv Backend — Classification Output Schema
================================================

What:  The shape the classification model must return, enforced with pydantic.
Why:   Model output is untrusted. A missing title, an unknown priority or a
       string where a list belongs must stop the run at `analyzing` instead of
       reaching the database as a malformed row.
Who:   ClassificationGateway validates parsed JSON with AnalysisResult; the
       pipeline orchestrator turns TaskItem / NoteItem into rows.

Accepted input keys are camelCase (dueDate) as the prompt requests; the
snake_case attribute names are accepted too.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from optsolv.schemas.common import CamelModel

Priority = Literal["low", "medium", "high"]


class TaskItem(CamelModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = Field(default=None, description="ISO 8601 datetime")

    @field_validator("description", "priority", "due_date", mode="before")
    @classmethod
    def empty_string_is_absent(cls, v):
        # The model fills optional fields it has nothing for with ""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class NoteItem(CamelModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)


class AnalysisResult(CamelModel):
    """
    Both lists are required (may be empty); summary is optional.

    Example:
        {
            "tasks": [{"title": "Call the dentist", "priority": "high"}],
            "notes": [{"title": "Idea", "content": "Weekly review on Fridays"}],
            "summary": "Errands and one idea"
        }
    """
    tasks: List[TaskItem]
    notes: List[NoteItem]
    summary: Optional[str] = None
