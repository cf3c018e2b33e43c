"""
StudyGenie Backend — Application Package Initializer
====================================================

What: Marks the `app` directory as a Python package.
Who:  Imported by uvicorn (`app.main:app`), Alembic, and pytest.

Architecture Note:
    The backend is layered the same way top to bottom:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   StudyAssistantService (request)   │  ← history → build → invoke → record
    ├─────────────────────────────────────┤
    │  ResilientInvoker + ProviderAdapter │  ← live provider or canned fallback
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Everything below the service line is request-scoped and holds no mutable
    state; provider configuration is resolved once at startup.
"""

__version__ = "1.0.0"
