# Utils package init
"""
Excalidraw Organizer Backend — Utilities
=========================================

Stateless helpers shared by routes and services:
    - security.py:             bcrypt hashing and JWT issue/verify
    - password_validation.py:  password strength scoring
    - sanitize.py:             input sanitization
    - compression.py:          gzip helpers for drawing JSON
    - cookies.py:              auth and CSRF cookie settings
"""
