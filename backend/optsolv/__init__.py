"""
OptSolv Backend — Application Package Initializer
===================================================

What: Marks the `optsolv` directory as a Python package.
Who:  Imported by uvicorn (`optsolv.main:app`), Alembic and pytest.

Architecture Note:

    ┌─────────────────────────────────────┐
    │        Routes (API Layer)           │  ← HTTP concerns, auth dependency
    ├─────────────────────────────────────┤
    │   Services (gateways + pipeline)    │  ← storage, OCR, classification, orchestration
    ├─────────────────────────────────────┤
    │   Repositories (typed data access)  │  ← every query scoped by user_id
    ├─────────────────────────────────────┤
    │   Models & Schemas (Data)           │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database (Persistence)            │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
