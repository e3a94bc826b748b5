"""
IdeaStore Backend — Entry Repository
======================================

What:  CRUD over `entries` metadata rows.
How:   Async SQLAlchemy against the request's AsyncSession. Writes are
       flushed immediately (ids and failures surface inside the call).
       EntryService commits through commit() once the blob side of a write
       has succeeded; get_db_session commits whatever else remains.
Who:   Called by EntryService only.

Failure Contract:
    - Missing rows raise NotFoundError("Entry not found")
    - Every SQLAlchemyError (connectivity, constraint, query) is wrapped in
      StoreUnavailableError. Nothing fails silently.

Query plans:
    list_all:   SELECT ... ORDER BY created_at DESC, id DESC
                → idx_entries_created_at
    get_by_id:  SELECT ... WHERE id = :id → primary key
"""

import json
import logging
from typing import List, Sequence

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ideastore.exceptions import NotFoundError, StoreUnavailableError
from ideastore.models.entry import Entry

logger = logging.getLogger(__name__)


class EntryRepository:
    """
    Data access for entry metadata.

    Stateless: every method receives the session to use, so one instance can
    serve all requests.
    """

    async def insert(
        self,
        db: AsyncSession,
        blob_id: str,
        blob_label: str,
        title: str,
        tags: Sequence[str],
    ) -> Entry:
        """
        Insert a new row and allocate its id and created_at.

        Returns:
            The flushed Entry (id and created_at populated).

        Raises:
            StoreUnavailableError: the insert failed for any database reason
        """
        entry = Entry(
            blob_id=blob_id,
            blob_label=blob_label,
            title=title,
            tags=json.dumps(list(tags)),
        )
        try:
            db.add(entry)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error inserting entry for blob %s: %s", blob_id, str(e))
            raise StoreUnavailableError(
                message="Failed to record the entry. Please try again later.",
                context={"blob_id": blob_id, "error_type": type(e).__name__},
            )

        logger.info("Entry %s inserted (blob=%s, title=%r)", entry.id, blob_id, title)
        return entry

    async def list_all(self, db: AsyncSession) -> List[Entry]:
        """All rows, newest first. No pagination."""
        try:
            result = await db.execute(
                select(Entry).order_by(desc(Entry.created_at), desc(Entry.id))
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing entries: %s", str(e), exc_info=True)
            raise StoreUnavailableError(
                message="Failed to fetch entries",
                context={"error_type": type(e).__name__},
            )

    async def get_by_id(self, db: AsyncSession, entry_id: int) -> Entry:
        """
        Fetch one row.

        Raises:
            NotFoundError: no row has this id (→ 404)
            StoreUnavailableError: query failed (→ 500)
        """
        try:
            result = await db.execute(select(Entry).where(Entry.id == entry_id))
            entry = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching entry %s: %s", entry_id, str(e))
            raise StoreUnavailableError(
                message="Failed to get entry",
                context={"entry_id": entry_id, "error_type": type(e).__name__},
            )

        if entry is None:
            raise NotFoundError(resource_id=str(entry_id))
        return entry

    async def update_title(self, db: AsyncSession, entry_id: int, title: str) -> Entry:
        """
        Persist a new title for an existing row.

        Raises:
            NotFoundError: no row has this id
            StoreUnavailableError: the update failed
        """
        entry = await self.get_by_id(db, entry_id)
        entry.title = title
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating title of entry %s: %s", entry_id, str(e))
            raise StoreUnavailableError(
                message="Failed to update entry",
                context={"entry_id": entry_id, "error_type": type(e).__name__},
            )
        return entry

    async def delete(self, db: AsyncSession, entry_id: int) -> None:
        """
        Remove a row.

        Raises:
            NotFoundError: no row has this id
            StoreUnavailableError: the delete failed
        """
        entry = await self.get_by_id(db, entry_id)
        try:
            await db.delete(entry)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting entry %s: %s", entry_id, str(e))
            raise StoreUnavailableError(
                message="Failed to delete entry",
                context={"entry_id": entry_id, "error_type": type(e).__name__},
            )
        logger.info("Entry %s deleted", entry_id)

    async def commit(self, db: AsyncSession) -> None:
        """
        Make the flushed writes of this request durable.

        Called by EntryService once the blob side of a write has succeeded,
        so a failing commit is reported inside the operation (and a saved
        blob is recognised as orphaned) rather than after the handler.

        Raises:
            StoreUnavailableError: the commit failed; the session is rolled back
        """
        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Database error committing entry changes: %s", str(e))
            await db.rollback()
            raise StoreUnavailableError(
                message="Failed to record the entry. Please try again later.",
                context={"error_type": type(e).__name__},
            )


# ── Singleton Instance ────────────────────────────────────────────────────
entry_repository = EntryRepository()
