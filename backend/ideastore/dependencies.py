"""
IdeaStore Backend — Service Dependencies
==========================================

FastAPI providers for the blob store and the entry service. Routes depend on
these instead of importing singletons, so tests replace the Drive store with
`app.dependency_overrides[get_blob_store]`.
"""

from fastapi import Depends

from ideastore.services.blob_store import BlobStore
from ideastore.services.drive_service import drive_blob_store
from ideastore.services.entry_service import EntryService


def get_blob_store() -> BlobStore:
    """The process-wide Google Drive blob store."""
    return drive_blob_store


def get_entry_service(blob_store: BlobStore = Depends(get_blob_store)) -> EntryService:
    """An EntryService bound to the request's blob store."""
    return EntryService(blob_store=blob_store)
