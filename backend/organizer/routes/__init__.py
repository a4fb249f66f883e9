# Routes package init
"""
Excalidraw Organizer Backend — API Routes Package
==================================================

Route Inventory:
    - auth.py:      /api/auth/*        accounts, sessions, settings, CSRF token
    - projects.py:  /api/projects/*    project CRUD
    - drawings.py:  /api/drawings/*    drawing CRUD, move, share, thumbnails
    - public.py:    /api/public/{id}   shared drawings, no auth
    - health.py:    /health, /health/db, /health/storage, /api

Routes are THIN: extract path/query/body, call a service, set headers or
cookies. Business rules live in services/.
"""
