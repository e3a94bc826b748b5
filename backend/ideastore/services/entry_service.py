"""
IdeaStore Backend — Entry Service (Persistence Workflow Orchestrator)
=======================================================================

What:  Save / list / get / load / update / delete for entries, coordinating
       the metadata rows (EntryRepository) with the content blobs (BlobStore).
How:   Each operation validates its input, then calls the stores in a fixed
       order and maps the result to a response schema.
Who:   Called by the route handlers in routes/entries.py.

Operation Order:
    save:    validate → compress → blob.upload → title → repo.insert → commit
    update:  validate → repo.get_by_id → compress → blob.update(same id)
             → title → repo.update_title → commit
    delete:  repo.get_by_id → blob.delete (missing blob is fine) → repo.delete → commit
    content: repo.get_by_id | title scan of repo.list_all → blob.download
             → decompress

Failure Policy:
    - Validation errors are raised before any store call
    - A failing call aborts the rest of the operation; nothing is retried
      and nothing is compensated
    - save: an upload failure leaves no row. An insert failure after a
      successful upload leaves an orphaned blob, which is logged with its id
    - update: title and content are written by separate calls, so two
      concurrent updates of one entry can interleave and leave the title of
      one request next to the content of the other
"""

import logging
import re
import time
import uuid
from typing import List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from ideastore.config import settings
from ideastore.exceptions import (
    BlobNotFoundError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from ideastore.schemas.entry import DeleteResponse, EntryResponse, EntryWriteResponse
from ideastore.services.blob_store import BlobStore
from ideastore.services.content_codec import compress_text, decompress_text
from ideastore.services.entry_repository import EntryRepository, entry_repository

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"

_LEADING_HEADING = re.compile(r"^#+\s*")
_ENTRY_ID = re.compile(r"\d+")


# ══════════════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════════════

def extract_title(content: Optional[str]) -> str:
    """
    Title of an entry: its first line without leading heading markers.

    Examples:
        "# Hello\\nWorld"   → "Hello"
        "No header here"   → "No header here"
        "###   "           → "Untitled"
        ""                 → "Untitled"
    """
    if not content or not isinstance(content, str):
        return UNTITLED
    first_line = content.split("\n", 1)[0]
    return _LEADING_HEADING.sub("", first_line).strip() or UNTITLED


def generate_blob_label() -> str:
    """Label for a new blob: entry-<epoch ms>-<8 hex>.gz"""
    return f"entry-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.gz"


def parse_entry_id(raw: Union[str, int, None]) -> int:
    """
    Parse an entry id from a path or query parameter.

    Raises:
        ValidationError("Invalid ID") for anything but a non-negative integer.
    """
    if isinstance(raw, int):
        return raw
    value = (raw or "").strip()
    if not _ENTRY_ID.fullmatch(value):
        raise ValidationError(message="Invalid ID", field="id", context={"value": value[:64]})
    return int(value)


def validate_content(body: Union[bytes, str, None], message: str) -> str:
    """
    Decode and check a raw text body.

    Raises:
        ValidationError(message) when the body is empty, whitespace-only,
        not UTF-8, or larger than settings.max_content_bytes.
    """
    if body is None:
        raise ValidationError(message=message, field="body")

    size = len(body) if isinstance(body, bytes) else len(body.encode("utf-8"))
    if size > settings.max_content_bytes:
        raise ValidationError(
            message=(
                f"Content exceeds maximum of {settings.max_content_bytes} bytes"
            ),
            field="body",
            context={"size": size, "max_size": settings.max_content_bytes},
        )

    if isinstance(body, bytes):
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError:
            raise ValidationError(message=message, field="body", context={"reason": "not utf-8"})
    else:
        text = body

    if not text.strip():
        raise ValidationError(message=message, field="body")
    return text


# ══════════════════════════════════════════════════════════════════════════
# Service
# ══════════════════════════════════════════════════════════════════════════

class EntryService:
    """
    Business logic for entries.

    Holds references to its two collaborators only; all per-request state
    (the session) is passed to each call.
    """

    def __init__(self, blob_store: BlobStore, repository: Optional[EntryRepository] = None):
        self.blob_store = blob_store
        self.repository = repository or entry_repository

    async def save(
        self,
        db: AsyncSession,
        body: Union[bytes, str, None],
        title_override: Optional[str] = None,
    ) -> EntryWriteResponse:
        """
        Create an entry from raw text.

        Args:
            db: Request database session
            body: Raw request body (markdown text)
            title_override: Explicit title; blank values fall back to the
                            title derived from the content

        Raises:
            ValidationError: empty or invalid body (no store call made)
            RemoteBlobError / ScratchStorageError: upload failed (no row written)
            StoreUnavailableError: insert or commit failed (blob left orphaned)
        """
        text = validate_content(body, "Empty or invalid input")

        label = generate_blob_label()
        stored = await self.blob_store.upload(label, compress_text(text))

        title = (title_override or "").strip() or extract_title(text)
        try:
            entry = await self.repository.insert(
                db,
                blob_id=stored.blob_id,
                blob_label=label,
                title=title,
                tags=settings.default_tags_list,
            )
            await self.repository.commit(db)
        except StoreUnavailableError:
            logger.error(
                "Orphaned blob %s (%s): metadata write failed after upload",
                stored.blob_id,
                label,
            )
            raise

        return EntryWriteResponse(
            id=entry.id,
            blobId=stored.blob_id,
            driveId=stored.blob_id,
            webViewLink=stored.view_link,
            title=title,
        )

    async def list_entries(self, db: AsyncSession) -> List[EntryResponse]:
        """All metadata rows, newest first."""
        entries = await self.repository.list_all(db)
        return [EntryResponse.from_entry(entry) for entry in entries]

    async def get_entry(self, db: AsyncSession, entry_id: int) -> EntryResponse:
        """One metadata row; NotFoundError when absent."""
        entry = await self.repository.get_by_id(db, entry_id)
        return EntryResponse.from_entry(entry)

    async def load_content(self, blob_id: str) -> str:
        """Download and decompress the blob `blob_id`."""
        data = await self.blob_store.download(blob_id)
        return decompress_text(data)

    async def get_content(
        self,
        db: AsyncSession,
        entry_id: Optional[int] = None,
        title: Optional[str] = None,
    ) -> str:
        """
        Text of an entry addressed by id, or by exact title.

        A title is resolved by scanning list_all() newest first; the first
        row with an equal title wins.

        Raises:
            ValidationError: neither id nor title given
            NotFoundError: nothing matches, or the row has no blob id
        """
        if entry_id is not None:
            entry = await self.repository.get_by_id(db, entry_id)
        elif title:
            entry = next(
                (row for row in await self.repository.list_all(db) if row.title == title),
                None,
            )
            if entry is None:
                raise NotFoundError(
                    message="No entry found with that title",
                    context={"title": title[:200]},
                )
        else:
            raise ValidationError(message="Either id or title is required", field="id")

        if not entry.blob_id:
            raise NotFoundError(
                message="Entry has no stored content",
                resource_id=str(entry.id),
            )
        return await self.load_content(entry.blob_id)

    async def update(
        self,
        db: AsyncSession,
        entry_id: int,
        body: Union[bytes, str, None],
    ) -> EntryWriteResponse:
        """
        Replace an entry's content in place and recompute its title.

        The blob keeps its id; only its bytes (and Drive name) change.

        Raises:
            ValidationError: empty or invalid body (no store call made)
            NotFoundError: no such entry, or its blob is gone from Drive
            RemoteBlobError / StoreUnavailableError: a store call failed
        """
        text = validate_content(body, "Empty or invalid content")

        entry = await self.repository.get_by_id(db, entry_id)
        blob_id = entry.blob_id
        label = entry.blob_label or generate_blob_label()

        stored = await self.blob_store.update(blob_id, compress_text(text), label)

        new_title = extract_title(text)
        await self.repository.update_title(db, entry_id, new_title)
        await self.repository.commit(db)

        return EntryWriteResponse(
            id=entry_id,
            blobId=stored.blob_id,
            driveId=stored.blob_id,
            webViewLink=stored.view_link,
            title=new_title,
        )

    async def delete(self, db: AsyncSession, entry_id: int) -> DeleteResponse:
        """
        Remove an entry's blob, then its row.

        A blob that is already missing from Drive does not stop the delete:
        the row is removed regardless.

        Raises:
            NotFoundError: no such entry (including one deleted earlier)
            RemoteBlobError: Drive refused the delete for another reason
                             (the row is kept)
        """
        entry = await self.repository.get_by_id(db, entry_id)

        try:
            await self.blob_store.delete(entry.blob_id)
        except BlobNotFoundError:
            logger.warning(
                "Blob %s of entry %s not found; continuing to delete row.",
                entry.blob_id,
                entry_id,
            )

        await self.repository.delete(db, entry_id)
        await self.repository.commit(db)
        return DeleteResponse(success=True, message=f"Entry {entry_id} deleted.")
