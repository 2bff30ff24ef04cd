"""
OptSolv Backend — Preference Schemas
======================================

What:  Read model and partial-update body for GET/PUT /api/preferences.
How:   Literal types restrict locale and filter to the supported values, so an
       unknown value is rejected with 400 before reaching the service.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import ConfigDict

from optsolv.schemas.common import CamelModel

Locale = Literal["pt-BR", "en-US"]
TaskFilter = Literal["all", "pending", "completed"]


class PreferenceResponse(CamelModel):
    preferred_locale: Locale
    task_filter: TaskFilter
    sidebar_open: bool
    updated_at: Optional[datetime] = None


class PreferenceUpdate(CamelModel):
    """Every field optional; omitted fields keep their stored value."""

    model_config = ConfigDict(extra="forbid")

    preferred_locale: Optional[Locale] = None
    task_filter: Optional[TaskFilter] = None
    sidebar_open: Optional[bool] = None
