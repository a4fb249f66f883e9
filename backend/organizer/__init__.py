"""
Excalidraw Organizer Backend
============================

What: Backend for organizing Excalidraw drawings into projects.
Who:  Imported by uvicorn (organizer.main:app), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │   Routes + Dependencies (API)       │  ← HTTP, auth, CSRF, limits
    ├─────────────────────────────────────┤
    │   Services (Business Logic)         │  ← ownership, counters, storage
    ├─────────────────────────────────────┤
    │   Models & Schemas (Data)           │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database / Object Storage         │  ← async sessions, backends
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
