"""
IdeaStore Backend — Application Package Initializer
=====================================================

What: Marks the `ideastore` directory as a Python package.
Who:  Imported by uvicorn (`ideastore.main:app`), Alembic, and pytest.

Architecture Note:
    The backend is layered the same way for every request:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     EntryService (orchestration)    │  ← validation, title, ordering
    ├──────────────────┬──────────────────┤
    │ EntryRepository  │    BlobStore     │  ← metadata rows / Drive blobs
    ├──────────────────┼──────────────────┤
    │ Async SQLAlchemy │ Google Drive API │
    └──────────────────┴──────────────────┘

    Entry content never touches the relational store. It lives in Drive as
    a gzip blob; the `entries` table only keeps the blob id, a label, the
    derived title, tags and the creation time.
"""

__version__ = "1.0.0"
