"""
Sloka API — Application Package Initializer
============================================

What: Marks the `sloka_api` directory as a Python package.
Who:  Imported by uvicorn (`sloka_api.main:app`), Alembic, the seed CLI and pytest.

Architecture Note:
    The service is a read-only verse API with a layered layout:

    ┌─────────────────────────────────────┐
    │        Middleware (cross-cutting)   │  ← headers, rate limits, logging
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  ← HTTP concerns, envelopes
    ├─────────────────────────────────────┤
    │    Services (selection + store)     │  ← pure math, query methods
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← engine handle on app.state
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
