"""
StudyGenie Backend — History Service Unit Tests
=================================================

What:  Tests for HistoryService with a mocked AsyncSession.

What we test:
    ✅ Rows come back as HistoryItems, newest first
    ✅ Read failures: [] for chat context, DatabaseError for the history API
    ✅ Write failures are logged and swallowed
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from app.exceptions import DatabaseError
from app.models.history import HistoryEntry
from app.services.history_service import HistoryService


def _db_failure() -> OperationalError:
    return OperationalError("SELECT ...", {}, Exception("connection refused"))


class TestHistoryServiceRead:
    """Tests for reading history rows."""

    def setup_method(self):
        self.service = HistoryService()

    @pytest.mark.asyncio
    async def test_get_recent_returns_items(self, mock_db_session, make_history_rows):
        """Rows come back as HistoryItems, newest first."""
        rows = make_history_rows(
            ("chat", {"message": "newest"}),
            ("stress", {"lifestyle": {"sleepHours": "6"}}),
        )
        mock_db_session.execute.return_value.scalars.return_value.all.return_value = rows

        items = await self.service.get_recent(mock_db_session, "user-1", limit=10)

        assert [item.feature_name for item in items] == ["chat", "stress"]
        assert items[0].prompt == {"message": "newest"}
        assert items[0].created_at > items[1].created_at
        mock_db_session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_query_filters_by_user_and_limits(self, mock_db_session):
        """The query filters by user, orders newest first and applies the limit."""
        await self.service.get_recent(mock_db_session, "user-42", limit=3)

        statement = mock_db_session.execute.await_args.args[0]
        compiled = statement.compile(compile_kwargs={"literal_binds": True})
        sql = str(compiled)
        assert "history.user_id = 'user-42'" in sql
        assert "ORDER BY history.created_at DESC, history.id DESC" in sql
        assert "LIMIT 3" in sql

    @pytest.mark.asyncio
    async def test_get_recent_returns_empty_on_database_error(self, mock_db_session):
        """A failed read gives an empty chat context."""
        mock_db_session.execute = AsyncMock(side_effect=_db_failure())

        assert await self.service.get_recent(mock_db_session, "user-1") == []

    @pytest.mark.asyncio
    async def test_list_history_wraps_result(self, mock_db_session, make_history_rows):
        """The history API wraps rows in a HistoryListResponse."""
        rows = make_history_rows(("support", {"message": "hi"}))
        mock_db_session.execute.return_value.scalars.return_value.all.return_value = rows

        response = await self.service.list_history(mock_db_session, "user-1", limit=100)

        assert len(response.history) == 1
        assert response.history[0].feature_name == "support"

    @pytest.mark.asyncio
    async def test_list_history_raises_database_error(self, mock_db_session):
        """A failed read for the history API raises DatabaseError."""
        mock_db_session.execute = AsyncMock(side_effect=_db_failure())

        with pytest.raises(DatabaseError):
            await self.service.list_history(mock_db_session, "user-1")


class TestHistoryServiceRecord:
    """Tests for writing history rows."""

    def setup_method(self):
        self.service = HistoryService()

    @pytest.mark.asyncio
    async def test_record_adds_and_flushes(self, mock_db_session):
        """A completed call is added and flushed as one row."""
        ok = await self.service.record(
            mock_db_session,
            user_id="user-1",
            feature_name="stress",
            prompt={"lifestyle": {"sleepHours": "5"}},
            response={"level": "Medium", "drivers": ["x"], "suggestions": ["y"]},
        )

        assert ok is True
        entry = mock_db_session.add.call_args.args[0]
        assert isinstance(entry, HistoryEntry)
        assert entry.user_id == "user-1"
        assert entry.feature_name == "stress"
        assert entry.response["level"] == "Medium"
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_record_failure_is_swallowed(self, mock_db_session):
        """A failed write is rolled back and reported as False."""
        mock_db_session.flush = AsyncMock(side_effect=_db_failure())

        ok = await self.service.record(
            mock_db_session,
            user_id="user-1",
            feature_name="chat",
            prompt={"message": "hi"},
            response={"answer": "hello"},
        )

        assert ok is False
        mock_db_session.rollback.assert_awaited_once()
