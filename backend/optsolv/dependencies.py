"""
OptSolv Backend — Dependency Providers
========================================

What:  FastAPI providers for every service a route needs.
How:   Process-wide gateways are returned as-is (they hold the circuit
       breaker and the in-flight run set); session-bound services are built
       per request on top of get_db_session.
Who:   Route signatures via Depends(...). Tests swap any of them with
       app.dependency_overrides.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from optsolv.database import get_db_session
from optsolv.services.classification_gateway import (
    ClassificationGateway,
    classification_gateway,
)
from optsolv.services.library_service import LibraryService
from optsolv.services.ocr_gateway import OcrGateway, ocr_gateway
from optsolv.services.pipeline import PipelineOrchestrator, pipeline_orchestrator
from optsolv.services.preference_service import PreferenceService
from optsolv.services.storage_gateway import StorageGateway, storage_gateway


def get_storage_gateway() -> StorageGateway:
    return storage_gateway


def get_ocr_gateway() -> OcrGateway:
    return ocr_gateway


def get_classification_gateway() -> ClassificationGateway:
    return classification_gateway


def get_pipeline_orchestrator() -> PipelineOrchestrator:
    return pipeline_orchestrator


async def get_library_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> LibraryService:
    return LibraryService(session)


async def get_preference_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> PreferenceService:
    return PreferenceService(session)
