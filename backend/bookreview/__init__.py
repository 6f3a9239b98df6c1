"""
BookReview Backend: Application Package
=========================================

Layers:

    ┌─────────────────────────────────────┐
    │   Routes + dependencies (HTTP)      │  ← status codes, auth gates
    ├─────────────────────────────────────┤
    │   Services (business rules)         │  ← uniqueness, pagination, enrichment
    ├─────────────────────────────────────┤
    │   Models & Schemas (data)           │  ← SQLAlchemy ORM + Pydantic rules
    ├─────────────────────────────────────┤
    │   Database (persistence)            │  ← per-request transactional sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
