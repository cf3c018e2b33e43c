"""
StudyGenie Backend — Shared Route Dependencies
================================================

What:  FastAPI dependencies used by several routers.
Who:   routes/ai.py and routes/history.py.

Authentication itself happens upstream; the gateway forwards the verified
user id in the X-User-ID header. Tests override get_current_user_id.
"""

from typing import Optional

from fastapi import Header

from app.exceptions import AuthenticationError
from app.services.assistant_service import StudyAssistantService, assistant_service

USER_ID_MAX_LENGTH = 64


async def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-ID"),
) -> str:
    """
    Returns the caller's user id.

    Raises:
        AuthenticationError: header missing, blank, or longer than the column (→ 401)
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise AuthenticationError("Authentication required: missing X-User-ID header")
    if len(user_id) > USER_ID_MAX_LENGTH:
        raise AuthenticationError("Authentication required: invalid X-User-ID header")
    return user_id


def get_assistant_service() -> StudyAssistantService:
    return assistant_service
