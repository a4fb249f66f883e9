# Middleware package init
"""
Excalidraw Organizer Backend — Middleware Package
==================================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Security Headers] → [Logging]
            → [GZip] → [CORS] → Route Handler

    1. Rate Limit FIRST: reject abusive requests before any processing
    2. Request ID: correlation ID for logging and error bodies
    3. Security Headers: HTTPS redirect, HSTS, hardening headers
    4. Logging: access log with status and duration
    5. GZip / CORS: response compression and cross-origin handling

CSRF checks (csrf.py) and the per-route limiters run as FastAPI
dependencies instead, because they need the authenticated user or the
outcome of the handler.
"""
