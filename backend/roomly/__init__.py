"""
Roomly Backend - Application Package Initializer
=================================================

What: Marks the `roomly` directory as a Python package.
Who:  Imported by uvicorn (roomly.main:app), Alembic, and pytest.

Architecture Note:
    The backend is a layered short-term rental marketplace API:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Validation, ownership, workflows
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes never build SQL; services never touch Request/Response objects
    (cookies and redirects stay in the route layer).
"""

__version__ = "1.0.0"
