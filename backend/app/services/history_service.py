"""
StudyGenie Backend — History Service
======================================

What:  Reads and writes the per-user interaction history.
How:   Plain async SQLAlchemy against the `history` table, using the session
       handed in by the caller (commit happens in get_db_session).
Who:   StudyAssistantService (record after every feature call, recent context
       for chat) and GET /api/history.

Failure policy:
    record()      → logs and swallows database errors; a failed write must
                    not cost the user the response they already got
    get_recent()  → logs and returns [] (chat just loses its context)
    list_history()→ raises DatabaseError (the user asked for history itself)

Query plan (all three reads):
    SELECT ... FROM history WHERE user_id = :uid
    ORDER BY created_at DESC, id DESC LIMIT :n
"""

import logging
from typing import Any, Dict, List

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError
from app.models.history import HistoryEntry
from app.schemas.history import HistoryItem, HistoryListResponse

logger = logging.getLogger(__name__)

MAX_HISTORY_LIMIT = 100


class HistoryService:
    """Stateless; every method receives the session it should use."""

    async def _fetch(self, db: AsyncSession, user_id: str, limit: int) -> List[HistoryItem]:
        limit = max(1, min(limit, MAX_HISTORY_LIMIT))
        result = await db.execute(
            select(HistoryEntry)
            .where(HistoryEntry.user_id == user_id)
            .order_by(desc(HistoryEntry.created_at), desc(HistoryEntry.id))
            .limit(limit)
        )
        return [HistoryItem.model_validate(row) for row in result.scalars().all()]

    async def get_recent(self, db: AsyncSession, user_id: str, limit: int = 10) -> List[HistoryItem]:
        """
        Most recent entries for a user, newest first.

        Returns:
            Up to `limit` items, or [] when the query fails.
        """
        try:
            return await self._fetch(db, user_id, limit)
        except SQLAlchemyError as e:
            logger.warning("Could not load recent history for user %s: %s", user_id, e)
            return []

    async def list_history(
        self, db: AsyncSession, user_id: str, limit: int = MAX_HISTORY_LIMIT
    ) -> HistoryListResponse:
        """
        Who:   GET /api/history.

        Raises:
            DatabaseError: Query execution failed (→ 500)
        """
        try:
            items = await self._fetch(db, user_id, limit)
        except SQLAlchemyError as e:
            logger.error("Database error listing history for user %s: %s", user_id, e)
            raise DatabaseError(
                message="Could not retrieve history. Please try again.",
                context={"user_id": user_id},
            )
        return HistoryListResponse(history=items)

    async def record(
        self,
        db: AsyncSession,
        user_id: str,
        feature_name: str,
        prompt: Dict[str, Any],
        response: Dict[str, Any],
    ) -> bool:
        """
        Appends one entry.

        Returns:
            True when the row was flushed, False when the write failed.
        """
        entry = HistoryEntry(
            user_id=user_id,
            feature_name=feature_name,
            prompt=prompt,
            response=response,
        )
        try:
            db.add(entry)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to record %s history for user %s: %s", feature_name, user_id, e
            )
            try:
                await db.rollback()
            except SQLAlchemyError as rollback_error:
                logger.error("Rollback after failed history write failed: %s", rollback_error)
            return False

        logger.debug("History entry %s recorded (%s)", entry.id, feature_name)
        return True


history_service = HistoryService()
