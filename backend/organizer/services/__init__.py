# Services package init
"""
Excalidraw Organizer Backend — Services Layer
==============================================

What:  Business logic between the routes (HTTP) and the database/storage.

Service Inventory:
    - AuthService:       accounts, password reset, preferences
    - ProjectService:    project CRUD and ownership checks
    - DrawingService:    drawing CRUD, move, share, thumbnails
    - StorageService:    drawing snapshots in object storage (with retries)
    - ThumbnailCache:    size-bounded LRU of thumbnails, persisted to disk

Each service is a stateless class with a module-level singleton; database
sessions are passed in per call so tests can swap in any session.
"""
