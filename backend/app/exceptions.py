"""
StudyGenie Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for the HTTP layer and the provider layer.
How:   Each exception carries a message and an optional context dict. Global
       exception handlers (registered in main.py) turn the HTTP-facing ones
       into structured JSON error responses.

Exception Hierarchy:
    StudyGenieError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthenticationError      → 401 Unauthorized
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── DatabaseError            → 500 Internal Server Error
    └── ProviderError            → never leaves ResilientInvoker
        ├── ProviderUnavailableError  (credential missing / adapter disabled)
        ├── ProviderCallError         (network, timeout, non-2xx, provider error)
        └── ResponseShapeError        (reply does not fit the feature schema)

ProviderError subclasses are internal: adapters convert them to
ProviderCallResult failures and the invoker converts shape errors into a
fallback, so no handler is registered for them.
"""

from typing import Any, Dict, Optional


class StudyGenieError(Exception):
    """
    Base exception for all StudyGenie application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(StudyGenieError):
    """
    Raised when client input fails a business rule.

    When:    Unsupported image type, image too large, empty upload.
    HTTP:    400 Bad Request

    Schema-level problems (missing JSON fields, wrong types) are reported by
    FastAPI itself with a 422.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(StudyGenieError):
    """
    Raised when a request reaches an authenticated route without an identity.

    The upstream auth gateway is expected to set X-User-ID; a missing or blank
    header means the request bypassed it.
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(StudyGenieError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error
    The client only ever sees a generic message; details are logged server-side.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(StudyGenieError):
    """
    Raised when a client exceeds the per-IP request rate limit on AI endpoints.

    HTTP:    429 Too Many Requests, with a Retry-After header.
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


# ══════════════════════════════════════════════════════════════════════════
# Provider layer (internal to the resilient pipeline)
# ══════════════════════════════════════════════════════════════════════════

class ProviderError(StudyGenieError):
    """
    Base for failures of an external AI provider.

    Attributes:
        provider: Adapter name ("openrouter", "gemini", "huggingface")
    """

    def __init__(
        self,
        message: str = "AI provider failed",
        provider: str = "unknown",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["provider"] = provider
        super().__init__(message=message, context=ctx)
        self.provider = provider


class ProviderUnavailableError(ProviderError):
    """Credential missing or adapter disabled; the provider is never called."""

    def __init__(self, provider: str = "unknown", context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"{provider} is not configured",
            provider=provider,
            context=context,
        )


class ProviderCallError(ProviderError):
    """Network error, timeout, non-2xx status, or an error reported by the provider."""


class ResponseShapeError(ProviderError):
    """Provider replied, but the text does not parse into the feature's schema."""
