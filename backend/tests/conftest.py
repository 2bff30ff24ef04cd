"""
OptSolv Backend — Test Configuration (conftest.py)
====================================================

What:  Shared fixtures for the whole suite.
How:   Environment variables are set before the first `optsolv` import so the
       settings singleton picks them up. Database tests run against an
       in-memory SQLite database (aiosqlite) created fresh per test; the
       Gemini SDK is never called (gateways get a mock LLMService).

Fixture Overview:
    db_engine / session_factory   in-memory schema, fresh per test
    storage                       StorageGateway on a tmp dir + test database
    mock_llm                      LLMService stand-in (generate is an AsyncMock)
    png_bytes / jpeg_bytes        real images generated with Pillow
    user / other_user             CurrentUser instances
    make_token / auth_headers     HS256 session tokens
    test_client                   httpx AsyncClient on the app, dependencies
                                  pointed at the test database and gateways
"""

import io
import os
import tempfile
import time
import uuid
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

# ── Environment (must run before any optsolv import) ─────────────────────
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="optsolv_test_")
os.environ["PUBLIC_BASE_URL"] = "http://test"
os.environ["AUTH_JWT_SECRET"] = "test-secret-with-enough-bytes-for-hs256-signing"
os.environ["AUTH_JWT_AUDIENCE"] = "authenticated"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["LOG_LEVEL"] = "WARNING"

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from PIL import Image  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from optsolv.auth import CurrentUser  # noqa: E402
from optsolv.config import settings  # noqa: E402
from optsolv.database import Base  # noqa: E402
from optsolv.models.document import Document  # noqa: E402,F401
from optsolv.models.note import Note  # noqa: E402,F401
from optsolv.models.preference import UserPreference  # noqa: E402,F401
from optsolv.models.task import Task  # noqa: E402,F401
from optsolv.services.classification_gateway import ClassificationGateway  # noqa: E402
from optsolv.services.llm_base import LLMService  # noqa: E402
from optsolv.services.ocr_gateway import OcrGateway  # noqa: E402
from optsolv.services.pipeline import PipelineOrchestrator  # noqa: E402
from optsolv.services.storage_gateway import StorageGateway  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite shared by every connection of one test (StaticPool)."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Users and tokens
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def user():
    return CurrentUser(id=uuid.uuid4(), email="ana@example.com")


@pytest.fixture
def other_user():
    return CurrentUser(id=uuid.uuid4(), email="bruno@example.com")


@pytest.fixture
def make_token():
    """
    Usage:
        token = make_token(user.id)
        expired = make_token(user.id, exp=int(time.time()) - 10)
    """
    def _make(user_id: uuid.UUID, secret: Optional[str] = None, **claims) -> str:
        payload = {
            "sub": str(user_id),
            "email": "ana@example.com",
            "aud": settings.auth_jwt_audience,
            "exp": int(time.time()) + 3600,
        }
        payload.update(claims)
        return jwt.encode(payload, secret or settings.auth_jwt_secret, algorithm="HS256")

    return _make


@pytest.fixture
def auth_headers(user, make_token):
    return {"Authorization": f"Bearer {make_token(user.id)}"}


# ══════════════════════════════════════════════════════════════════════════
# Images
# ══════════════════════════════════════════════════════════════════════════

def _image_bytes(fmt: str) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (16, 16), color=(255, 255, 255)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    return _image_bytes("PNG")


@pytest.fixture
def jpeg_bytes():
    return _image_bytes("JPEG")


# ══════════════════════════════════════════════════════════════════════════
# Gateways and services
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_llm():
    """
    LLMService stand-in. Set `mock_llm.generate.return_value` (or side_effect)
    per test; inspect `mock_llm.generate.await_args` for the prompt and config.
    """
    llm = MagicMock(spec=LLMService)
    llm.is_configured = True
    llm.generate = AsyncMock(return_value="")
    llm.health_check = AsyncMock(return_value=True)
    return llm


@pytest.fixture
def storage(tmp_path, session_factory):
    return StorageGateway(
        storage_root=str(tmp_path / "storage"),
        public_base_url="http://test",
        session_factory=session_factory,
    )


@pytest.fixture
def ocr(mock_llm, storage):
    return OcrGateway(llm=mock_llm, storage=storage)


@pytest.fixture
def classifier(mock_llm):
    return ClassificationGateway(llm=mock_llm)


@pytest.fixture
def orchestrator(storage, ocr, classifier, session_factory):
    return PipelineOrchestrator(
        storage=storage,
        ocr=ocr,
        classifier=classifier,
        session_factory=session_factory,
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory, storage, ocr, classifier, orchestrator):
    """
    httpx AsyncClient talking to the app through ASGITransport.

    Request sessions, gateways and the orchestrator are overridden so every
    request hits the per-test database and the mock LLM.
    """
    from optsolv import dependencies
    from optsolv.database import get_db_session
    from optsolv.main import app

    async def _test_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _test_db_session
    app.dependency_overrides[dependencies.get_storage_gateway] = lambda: storage
    app.dependency_overrides[dependencies.get_ocr_gateway] = lambda: ocr
    app.dependency_overrides[dependencies.get_classification_gateway] = lambda: classifier
    app.dependency_overrides[dependencies.get_pipeline_orchestrator] = lambda: orchestrator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
