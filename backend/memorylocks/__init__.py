"""
Memory Locks API — Application Package
=======================================

What: Database worker behind the Memory Locks apps and the public album site.
Who:  Imported by uvicorn (memorylocks.main:app), Alembic and pytest.

Layering:

    ┌─────────────────────────────────────┐
    │     Middleware (rate limit, auth)   │
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  ← HTTP parsing, envelopes
    ├─────────────────────────────────────┤
    │         Services (Data Access)      │  ← update builder, milestones
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.1"
