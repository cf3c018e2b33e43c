"""
StudyGenie Backend — History Route Handler
============================================

What:  GET /api/history, the caller's past feature interactions.
Who:   The frontend dashboard / activity view.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_current_user_id
from app.schemas.history import ErrorResponse, HistoryListResponse
from app.services.history_service import MAX_HISTORY_LIMIT, history_service

router = APIRouter(prefix="/api", tags=["History"])


@router.get(
    "/history",
    response_model=HistoryListResponse,
    responses={
        401: {"description": "Missing X-User-ID header", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="List recent interactions, newest first",
)
async def list_history(
    limit: int = Query(default=MAX_HISTORY_LIMIT, ge=1, le=MAX_HISTORY_LIMIT),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> HistoryListResponse:
    return await history_service.list_history(db, user_id, limit)
