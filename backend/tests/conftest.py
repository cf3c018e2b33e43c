"""
StudyGenie Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixtures (function-scoped):
    ├── mock_db_session: Mock AsyncSession (no real DB needed)
    ├── make_history_rows: Builds HistoryEntry rows for query results
    ├── text_prompt / image_prompt: PromptSpecs for adapter tests
    ├── provider_config: Factory for available ProviderConfigs
    └── test_client: HTTPX AsyncClient wired to the app, with the DB
                     dependency overridden by mock_db_session
"""

import os

# Override settings BEFORE any app imports: no real database, no provider
# credentials (every feature runs on canned responses unless a test injects
# its own adapters), and no rate limiting interference.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["OPENROUTER_API_KEY"] = ""
os.environ["GEMINI_API_KEY"] = ""
os.environ["HF_API_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.models.history import HistoryEntry
from app.services.provider_base import EndpointDescriptor, PromptSpec, ProviderConfig


# ══════════════════════════════════════════════════════════════════════════
# Database fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    execute() returns a result whose scalars().all() is an empty list unless a
    test replaces it.

    Usage:
        async def test_list(mock_db_session, make_history_rows):
            mock_db_session.execute.return_value.scalars.return_value.all.return_value = rows
    """
    result = MagicMock()
    result.scalars.return_value.all.return_value = []

    session = AsyncMock()
    session.execute = AsyncMock(return_value=result)
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def make_history_rows():
    """Builds HistoryEntry rows, newest first, one per (feature_name, prompt) pair."""

    def _make(*entries, user_id="user-1"):
        now = datetime.now(timezone.utc)
        rows = []
        for index, (feature_name, prompt) in enumerate(entries):
            row = HistoryEntry(
                user_id=user_id,
                feature_name=feature_name,
                prompt=prompt,
                response={"answer": "ok"},
            )
            row.id = len(entries) - index
            row.created_at = now - timedelta(minutes=index)
            rows.append(row)
        return rows

    return _make


# ══════════════════════════════════════════════════════════════════════════
# Provider fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def text_prompt():
    return PromptSpec(
        messages=(
            {"role": "system", "content": "You are a test assistant."},
            {"role": "user", "content": "Say hello."},
        )
    )


@pytest.fixture
def image_prompt():
    # Minimal JPEG: SOI + JFIF header + EOI
    return PromptSpec(
        image=b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9",
        content_type="image/jpeg",
    )


@pytest.fixture
def provider_config():
    """Factory for an available ProviderConfig with one endpoint per model name."""

    def _make(name="openrouter", models=("model-a", "model-b"), url="https://llm.test/v1/chat",
              timeout=2.0, api_key="test-key-not-real", headers=None):
        return ProviderConfig(
            name=name,
            api_key=api_key,
            endpoints=tuple(EndpointDescriptor(url=url, model=model) for model in models),
            timeout=timeout,
            temperature=0.7,
            headers=headers or {},
        )

    return _make


# ══════════════════════════════════════════════════════════════════════════
# HTTP client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(mock_db_session):
    """
    HTTPX AsyncClient talking to the FastAPI app through ASGITransport.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    from app.database import get_db_session
    from app.main import app

    async def _override_db():
        yield mock_db_session

    app.dependency_overrides[get_db_session] = _override_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
