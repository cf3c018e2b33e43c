"""
StudyGenie Backend — API Route Tests
======================================

What:  End-to-end HTTP tests through an ASGI client.
How:   The database dependency is replaced with mock_db_session (conftest);
       no provider credentials are configured, so features answer with canned
       responses unless a test swaps in its own StudyAssistantService.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from app.dependencies import get_assistant_service
from app.middleware.rate_limit import RateLimitMiddleware
from app.models.history import HistoryEntry
from app.schemas.ai import FeatureType
from app.services.assistant_service import StudyAssistantService
from app.services.image_upload import image_upload_service
from app.services.mock_responses import CHAT_ANSWERS, STRESS_FALLBACK, MockResponseGenerator
from app.services.provider_base import EndpointDescriptor, ProviderAdapter, ProviderConfig
from app.services.resilient_invoker import ResilientInvoker

USER = {"X-User-ID": "user-1"}


class CannedReplyAdapter(ProviderAdapter):
    def __init__(self, reply: str):
        super().__init__(ProviderConfig(
            name="fake",
            api_key="key",
            endpoints=(EndpointDescriptor(url="https://fake.test", model="fake-model"),),
        ))
        self.reply = reply

    async def _call_endpoint(self, endpoint, prompt, options):
        return self.reply


def _recorded_entries(mock_db_session):
    return [call.args[0] for call in mock_db_session.add.call_args_list
            if isinstance(call.args[0], HistoryEntry)]


class TestAuthentication:
    """Tests for the X-User-ID requirement."""

    @pytest.mark.asyncio
    async def test_missing_user_header_is_401(self, test_client):
        """A request without X-User-ID gets a 401 with the request id."""
        response = await test_client.post("/api/ai/chat", json={"message": "hi"})

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "authentication_required"
        assert body["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_blank_user_header_is_401(self, test_client):
        """A blank X-User-ID is treated as missing."""
        response = await test_client.get("/api/history", headers={"X-User-ID": "   "})
        assert response.status_code == 401


class TestFeatureRoutesWithoutProviders:
    """With no credentials every feature answers with its canned response."""

    @pytest.mark.asyncio
    async def test_stress_returns_fallback_and_records_history(self, test_client, mock_db_session):
        """The stress fallback is returned and stored in history."""
        response = await test_client.post(
            "/api/ai/stress",
            json={"lifestyle": {"sleepHours": "5", "workloadLevel": "high"}},
            headers=USER,
        )

        assert response.status_code == 200
        assert response.json() == STRESS_FALLBACK

        entries = _recorded_entries(mock_db_session)
        assert len(entries) == 1
        assert entries[0].user_id == "user-1"
        assert entries[0].feature_name == "stress"
        assert entries[0].prompt == {"lifestyle": {"sleepHours": "5", "workloadLevel": "high"}}
        assert entries[0].response == STRESS_FALLBACK

    @pytest.mark.asyncio
    async def test_chat_roadmap_question(self, test_client, mock_db_session):
        """A roadmap question in chat gets the roadmap answer after reading history."""
        response = await test_client.post(
            "/api/ai/chat",
            json={"message": "Can you help me build a roadmap for my course?"},
            headers=USER,
        )

        assert response.status_code == 200
        assert response.json() == {"answer": CHAT_ANSWERS["roadmap"]}
        # Chat reads recent history for context before answering
        mock_db_session.execute.assert_awaited()

    @pytest.mark.asyncio
    async def test_study_style(self, test_client):
        """Study-style answers with the canned study-style result."""
        response = await test_client.post(
            "/api/ai/study-style", json={"answers": {"q1": 5, "q2": 3}}, headers=USER
        )

        expected = MockResponseGenerator().generate(FeatureType.STUDY_STYLE)
        assert response.status_code == 200
        assert response.json() == expected.model_dump(mode="json")

    @pytest.mark.asyncio
    async def test_genieguide_accepts_camel_case(self, test_client, mock_db_session):
        """The roadmap route accepts camelCase fields and stores them as sent."""
        response = await test_client.post(
            "/api/ai/genieguide",
            json={"courseInfo": "Organic Chemistry", "weeklyHours": 8, "currentLevel": "beginner"},
            headers=USER,
        )

        assert response.status_code == 200
        body = response.json()
        assert [week["week"] for week in body["weeks"]] == [1, 2, 3, 4]
        assert body["mindmap"]

        entry = _recorded_entries(mock_db_session)[0]
        assert entry.feature_name == "genieguide"
        assert entry.prompt == {
            "courseInfo": "Organic Chemistry",
            "weeklyHours": 8.0,
            "currentLevel": "beginner",
        }

    @pytest.mark.asyncio
    async def test_support_includes_disclaimer(self, test_client):
        """Support replies carry the disclaimer."""
        response = await test_client.post(
            "/api/ai/support", json={"message": "I feel overwhelmed"}, headers=USER
        )

        assert response.status_code == 200
        assert response.json()["disclaimer"]

    @pytest.mark.asyncio
    async def test_image_analyze(self, test_client, mock_db_session):
        """An uploaded image gets canned labels and only its filename is stored."""
        response = await test_client.post(
            "/api/ai/image-analyze",
            files={"image": ("desk.jpg", b"\xff\xd8\xff\xe0\x00\x10JFIF\xff\xd9", "image/jpeg")},
            headers=USER,
        )

        assert response.status_code == 200
        labels = response.json()["labels"]
        assert labels[0] == {"label": "notebook", "score": 0.62}

        entry = _recorded_entries(mock_db_session)[0]
        assert entry.prompt == {"filename": "desk.jpg"}

    @pytest.mark.asyncio
    async def test_history_write_failure_does_not_fail_request(self, test_client, mock_db_session):
        """A failed history write still returns the answer."""
        mock_db_session.flush = AsyncMock(
            side_effect=OperationalError("INSERT ...", {}, Exception("disk full"))
        )

        response = await test_client.post(
            "/api/ai/chat", json={"message": "hello"}, headers=USER
        )

        assert response.status_code == 200
        assert response.json()["answer"]


class TestRequestValidation:
    """Tests for request bodies and uploads that are rejected."""

    @pytest.mark.asyncio
    async def test_out_of_range_answer_is_422(self, test_client):
        """Quiz answers outside 1..5 are rejected by FastAPI."""
        response = await test_client.post(
            "/api/ai/study-style", json={"answers": {"q1": 9}}, headers=USER
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_blank_message_is_422(self, test_client):
        """A whitespace-only message is rejected."""
        response = await test_client.post("/api/ai/chat", json={"message": "   "}, headers=USER)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unsupported_image_is_400(self, test_client, mock_db_session):
        """A non-image upload is a 400 and nothing is recorded."""
        response = await test_client.post(
            "/api/ai/image-analyze",
            files={"image": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
            headers=USER,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "image"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_oversized_image_is_400(self, test_client, mock_db_session):
        """An image one byte over the cap is rejected before any provider call."""
        with patch.object(image_upload_service, "max_size", 16):
            response = await test_client.post(
                "/api/ai/image-analyze",
                files={"image": ("desk.png", b"\x89PNG" + b"\x00" * 13, "image/png")},
                headers=USER,
            )

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "image"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_image_at_the_cap_is_accepted(self, test_client):
        """An image exactly at the cap is analysed."""
        with patch.object(image_upload_service, "max_size", 16):
            response = await test_client.post(
                "/api/ai/image-analyze",
                files={"image": ("desk.png", b"\x89PNG" + b"\x00" * 12, "image/png")},
                headers=USER,
            )

        assert response.status_code == 200


class TestLiveProvider:
    """Tests with a provider that answers."""

    @pytest.mark.asyncio
    async def test_provider_reply_is_returned(self, test_client):
        """A live reply is parsed, normalised and returned."""
        from app.main import app

        reply = json.dumps({"level": "high", "drivers": ["Exams"], "suggestions": ["Sleep more"]})
        service = StudyAssistantService(
            invoker=ResilientInvoker(
                {"fake": CannedReplyAdapter(reply)}, {FeatureType.STRESS: ["fake"]}
            )
        )
        app.dependency_overrides[get_assistant_service] = lambda: service

        response = await test_client.post(
            "/api/ai/stress", json={"lifestyle": {"sleepHours": 4}}, headers=USER
        )

        assert response.status_code == 200
        assert response.json() == {"level": "High", "drivers": ["Exams"], "suggestions": ["Sleep more"]}


class TestHistoryRoute:
    """Tests for GET /api/history."""

    @pytest.mark.asyncio
    async def test_lists_history_newest_first(self, test_client, mock_db_session, make_history_rows):
        """History is listed newest first."""
        rows = make_history_rows(("chat", {"message": "latest"}), ("stress", {"lifestyle": {"a": 1}}))
        mock_db_session.execute.return_value.scalars.return_value.all.return_value = rows

        response = await test_client.get("/api/history", headers=USER)

        assert response.status_code == 200
        history = response.json()["history"]
        assert [item["feature_name"] for item in history] == ["chat", "stress"]
        assert history[0]["prompt"] == {"message": "latest"}

    @pytest.mark.asyncio
    async def test_limit_out_of_range_is_422(self, test_client):
        """Limits outside 1..100 are rejected."""
        assert (await test_client.get("/api/history?limit=0", headers=USER)).status_code == 422
        assert (await test_client.get("/api/history?limit=101", headers=USER)).status_code == 422

    @pytest.mark.asyncio
    async def test_database_failure_is_500(self, test_client, mock_db_session):
        """A database failure is a generic 500."""
        mock_db_session.execute = AsyncMock(
            side_effect=OperationalError("SELECT ...", {}, Exception("connection refused"))
        )

        response = await test_client.get("/api/history", headers=USER)

        assert response.status_code == 500
        assert response.json()["error"] == "server_error"


class TestHealthRoute:
    """Tests for GET /health."""

    @pytest.mark.asyncio
    async def test_healthy_with_all_providers_mocked(self, test_client):
        """Missing providers are reported as mock, not unhealthy."""
        with patch("app.routes.health.check_database", AsyncMock(return_value=True)):
            response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["providers"] == {
            "openrouter": "mock",
            "gemini": "mock",
            "huggingface": "mock",
        }

    @pytest.mark.asyncio
    async def test_database_down_is_503(self, test_client):
        """An unreachable database makes the service unhealthy."""
        failure = OperationalError("SELECT 1", {}, Exception("connection refused"))
        with patch("app.routes.health.check_database", AsyncMock(side_effect=failure)):
            response = await test_client.get("/health")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"


class TestRateLimit:
    """Tests for the per-IP limit on AI routes."""

    @pytest.mark.asyncio
    async def test_only_ai_routes_are_limited(self):
        """AI routes hit the limit while other routes stay open."""
        app = FastAPI()
        app.add_middleware(RateLimitMiddleware, max_requests=2, window=60)

        @app.get("/api/ai/ping")
        async def ping():
            return {"ok": True}

        @app.get("/api/history")
        async def history():
            return {"history": []}

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            assert (await client.get("/api/ai/ping")).status_code == 200
            assert (await client.get("/api/ai/ping")).status_code == 200
            limited = await client.get("/api/ai/ping")
            for _ in range(5):
                assert (await client.get("/api/history")).status_code == 200

        assert limited.status_code == 429
        assert int(limited.headers["Retry-After"]) >= 1
        assert limited.json()["error"] == "rate_limit_exceeded"
