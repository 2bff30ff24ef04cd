"""
OptSolv Backend — Preference Routes
=====================================

    GET /api/preferences   stored preferences, or the defaults
    PUT /api/preferences   partial update; omitted fields are kept
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from optsolv.auth import CurrentUser, get_current_user
from optsolv.dependencies import get_preference_service
from optsolv.schemas.common import Envelope
from optsolv.schemas.preference import PreferenceResponse, PreferenceUpdate
from optsolv.services.preference_service import PreferenceService

router = APIRouter(prefix="/api", tags=["Preferences"])


@router.get("/preferences", response_model=Envelope[PreferenceResponse])
async def get_preferences(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    preferences: Annotated[PreferenceService, Depends(get_preference_service)],
):
    return Envelope(data=await preferences.get(user.id))


@router.put("/preferences", response_model=Envelope[PreferenceResponse])
async def update_preferences(
    body: PreferenceUpdate,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    preferences: Annotated[PreferenceService, Depends(get_preference_service)],
):
    return Envelope(data=await preferences.update(user.id, body))
