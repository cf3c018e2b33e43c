"""
StudyGenie Backend — History, Error & Health Schemas
=====================================================

What:  Pydantic models for the history log API, the shared error body, and
       the health check.
Who:   HistoryService, routes, and the global exception handlers.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class HistoryItem(BaseModel):
    """
    What:  One stored feature interaction.
    Who:   Returned inside GET /api/history; also the HistoryContextEntry the
           chat prompt builder consumes.
    """
    id: int = Field(description="History row id")
    feature_name: str = Field(description="Feature that produced this entry, e.g. 'chat'")
    prompt: Dict[str, Any] = Field(description="Input payload as the user sent it")
    response: Dict[str, Any] = Field(description="Structured response returned to the user")
    created_at: datetime = Field(description="When the interaction happened (UTC)")

    model_config = {"from_attributes": True}


class HistoryListResponse(BaseModel):
    """Newest-first list of a user's interactions."""
    history: List[HistoryItem] = Field(description="History entries, newest first")


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Image type '.pdf' is not supported",
            "details": {"field": "image"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.

    Providers report "available" (credential configured) or "mock" (canned
    responses). Mock mode is a supported steady state, not a degradation.
    """
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    providers: Dict[str, str] = Field(description="Provider name → available | mock")
    uptime_seconds: float = Field(description="Seconds since service started")
