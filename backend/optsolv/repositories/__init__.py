"""
OptSolv Backend — Repository Layer
====================================

Typed data access over the ORM models. Every method takes the acting user's
id and filters on it, so a row owned by someone else is indistinguishable
from a row that does not exist.

Repositories only flush; committing is the caller's job (request session
dependency or database.session_scope).
"""

from optsolv.repositories.document_repository import DocumentRepository
from optsolv.repositories.note_repository import NoteRepository
from optsolv.repositories.preference_repository import PreferenceRepository
from optsolv.repositories.task_repository import TaskRepository

__all__ = [
    "DocumentRepository",
    "NoteRepository",
    "PreferenceRepository",
    "TaskRepository",
]
