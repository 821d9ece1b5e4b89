"""
DevCamper Backend — Application Package
=========================================

What: Bootcamp directory REST API (bootcamps, courses, reviews, users).

Layers:
    ┌─────────────────────────────────────┐
    │   Routes (API Layer, FastAPI)       │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Auth (gate, policy, tokens)       │  ← who may do what
    ├─────────────────────────────────────┤
    │   Services (Business Logic)         │  ← one store call per operation
    ├─────────────────────────────────────┤
    │   Models & Schemas (Data)           │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database (Persistence)            │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
