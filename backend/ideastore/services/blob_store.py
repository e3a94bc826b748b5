"""
IdeaStore Backend — Abstract Blob Store Interface
===================================================

What:  Contract for storing entry content blobs in a remote object store.
How:   Concrete stores inherit from BlobStore and implement the four blob
       operations plus a health probe.
Who:   Called by EntryService; GoogleDriveBlobStore is the production store,
       tests substitute an in-memory one.

The store is content-agnostic: callers hand it already-compressed bytes and
decompress what it returns. The label only names the remote object and
supplies a MIME hint from its extension.
"""

import mimetypes
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class StoredBlob:
    """Identifier and browser link of a blob after upload or update."""

    blob_id: str
    view_link: Optional[str] = None


def mime_type_for(label: str) -> str:
    """
    MIME hint derived from the label's extension.

    `.gz` labels map to application/gzip; unknown extensions fall back to
    application/octet-stream.
    """
    mime_type, encoding = mimetypes.guess_type(label)
    if mime_type is None and encoding == "gzip":
        return "application/gzip"
    return mime_type or "application/octet-stream"


class BlobStore(ABC):
    """
    Abstract interface for remote blob storage.

    Contract:
        - upload() creates exactly one remote object and returns its id
        - update() overwrites in place; the returned id equals the input id
        - download()/update()/delete() raise BlobNotFoundError for unknown ids
        - every other failure is raised as RemoteBlobError
        - nothing is retried
    """

    @abstractmethod
    async def upload(self, label: str, data: bytes) -> StoredBlob:
        """Create a new remote object named `label` holding `data`."""
        ...

    @abstractmethod
    async def download(self, blob_id: str) -> bytes:
        """Return the bytes stored under `blob_id`."""
        ...

    @abstractmethod
    async def update(self, blob_id: str, data: bytes, label: str) -> StoredBlob:
        """Replace the content of `blob_id` with `data` and rename it to `label`."""
        ...

    @abstractmethod
    async def delete(self, blob_id: str) -> None:
        """Remove `blob_id` from the remote store."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check that the store is reachable and authenticated.

        Returns True if reachable, False otherwise. Never raises.
        """
        ...
