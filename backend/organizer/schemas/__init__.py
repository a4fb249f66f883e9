# Schemas package init
"""
Excalidraw Organizer Backend — Request/Response Schemas
========================================================

Pydantic models for every API contract, camelCase on the wire.
"""
