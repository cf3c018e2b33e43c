# Routes package init
"""
StudyGenie Backend — API Routes Package
=========================================

Route Inventory:
    - ai.py:       POST /api/ai/{study-style, stress, genieguide, chat, support, image-analyze}
    - history.py:  GET  /api/history
    - health.py:   GET  /health

Routes stay thin: extract the request, call a service, return its result.
"""
