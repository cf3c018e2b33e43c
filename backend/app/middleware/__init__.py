# Middleware package init
"""
StudyGenie Backend — Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Rate Limit: /api/ai/* only] → [Logging] → [GZip] → [CORS] → Route

    Request ID runs first so the rate limiter's 429 body and every access-log
    line carry the correlation id.
"""
